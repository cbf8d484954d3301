"""State snapshot and run context types shared by terraform calls."""

import threading
from dataclasses import dataclass

from tfstate_migrator.errors import CancelledError


@dataclass(frozen=True)
class State:
    """An immutable snapshot of a tfstate.

    Every mutating terraform call takes one State and returns a new one;
    nothing holds on to a State after returning it.

    Attributes:
        raw: The serialized tfstate as produced by ``terraform state pull``.
    """

    raw: bytes


class Context:
    """Cancellation token handed from the top-level run to every terraform call.

    Example:
        ```python
        ctx = Context()
        runner.apply(ctx)  # ctx.cancel() from a signal handler aborts it
        ```
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Request cancellation of the run."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._cancelled.is_set()

    def check(self) -> None:
        """Raise CancelledError if the run has been cancelled."""
        if self._cancelled.is_set():
            raise CancelledError("operation cancelled")
