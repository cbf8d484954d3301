"""Thin wrapper around the terraform executable.

Each call runs terraform as a child process in the migration's working
directory. States are handed to terraform through temporary files so that
every mutating call consumes one :class:`State` and returns a fresh one.
"""

import logging
import os
import subprocess  # nosec B404
import tempfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from tfstate_migrator.errors import (
    CancelledError,
    MigratorError,
    TerraformCommandError,
    TerraformExecError,
)
from tfstate_migrator.tfexec.state import Context, State

logger = logging.getLogger(__name__)

# Switches the backend to local so that plan can read a state file.
OVERRIDE_FILENAME = "_tfmigrate_override.tf"
LOCAL_BACKEND_OVERRIDE = """terraform {
  backend "local" {
  }
}
"""


class TerraformCLI:
    """Runs terraform state commands against in-memory state snapshots.

    Attributes:
        working_dir: Directory holding the terraform configuration.
        exec_path: terraform executable name or path.
        workspace: Terraform workspace the commands run in.

    Example:
        ```python
        tf = TerraformCLI(Path("envs/dev"))
        ctx = Context()
        state = tf.state_pull(ctx)
        state = tf.state_mv(ctx, state, "aws_instance.a", "aws_instance.b")
        tf.state_push(ctx, state)
        ```
    """

    def __init__(
        self,
        working_dir: Path,
        exec_path: str = "terraform",
        workspace: str = "default",
        poll_interval: float = 0.2,
    ) -> None:
        self.working_dir = working_dir
        self.exec_path = exec_path
        self.workspace = workspace
        self.poll_interval = poll_interval

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["TF_IN_AUTOMATION"] = "1"
        if self.workspace != "default":
            env["TF_WORKSPACE"] = self.workspace
        return env

    def run(
        self,
        ctx: Context,
        *args: str,
        ok_returncodes: Sequence[int] = (0,),
    ) -> tuple[bytes, int]:
        """Run a terraform command and wait for it, honoring cancellation.

        Args:
            ctx: Run context; the child process is killed when it is cancelled.
            *args: Arguments after the executable.
            ok_returncodes: Exit statuses that are not treated as failures.

        Returns:
            Tuple of (stdout bytes, exit status).

        Raises:
            CancelledError: If the context was cancelled.
            TerraformCommandError: If terraform exited with another status.
            TerraformExecError: If the process could not be started.
        """
        ctx.check()
        logger.debug(f"[exec] {self.exec_path} {' '.join(args)} (dir: {self.working_dir})")

        try:
            proc = subprocess.Popen(  # nosec B603 - executable and args are controlled
                [self.exec_path, *args],
                cwd=str(self.working_dir),
                env=self._env(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise TerraformExecError(
                f"failed to run {self.exec_path} in {self.working_dir}: {e}"
            ) from e

        while True:
            try:
                stdout, stderr = proc.communicate(timeout=self.poll_interval)
                break
            except subprocess.TimeoutExpired:
                if ctx.cancelled:
                    proc.kill()
                    proc.communicate()
                    raise CancelledError(f"terraform {args[0]} cancelled") from None

        if proc.returncode not in ok_returncodes:
            raise TerraformCommandError(args, proc.returncode, stderr.decode(errors="replace"))

        return stdout, proc.returncode

    @contextmanager
    def _state_file(self, state: State) -> Iterator[Path]:
        """Write a state to a private temp file and yield its path."""
        with tempfile.TemporaryDirectory(prefix="tfmigrate") as tmpdir:
            path = Path(tmpdir) / "terraform.tfstate"
            path.write_bytes(state.raw)
            yield path

    def version(self, ctx: Context) -> str:
        """Return the first line of ``terraform version``."""
        stdout, _ = self.run(ctx, "version")
        return stdout.decode().splitlines()[0].strip()

    def init(self, ctx: Context, *opts: str) -> None:
        """Run ``terraform init`` non-interactively."""
        self.run(ctx, "init", "-input=false", "-no-color", *opts)

    def state_pull(self, ctx: Context) -> State:
        """Fetch the current state from the configured backend."""
        stdout, _ = self.run(ctx, "state", "pull")
        return State(stdout)

    def state_push(self, ctx: Context, state: State) -> None:
        """Overwrite the backend state with the given snapshot."""
        with self._state_file(state) as path:
            self.run(ctx, "state", "push", str(path))

    def state_list(self, ctx: Context, state: State) -> list[str]:
        """List resource addresses contained in a state, in terraform's order."""
        with self._state_file(state) as path:
            stdout, _ = self.run(ctx, "state", "list", f"-state={path}")
        return [line.strip() for line in stdout.decode().splitlines() if line.strip()]

    def state_mv(self, ctx: Context, state: State, source: str, destination: str) -> State:
        """Move an address inside a state and return the resulting state."""
        with self._state_file(state) as path:
            self.run(ctx, "state", "mv", f"-state={path}", source, destination)
            return State(path.read_bytes())

    def state_rm(self, ctx: Context, state: State, addresses: Sequence[str]) -> State:
        """Remove addresses from a state and return the resulting state."""
        with self._state_file(state) as path:
            self.run(ctx, "state", "rm", f"-state={path}", *addresses)
            return State(path.read_bytes())

    def import_resource(
        self, ctx: Context, state: State, address: str, resource_id: str
    ) -> State:
        """Import an existing object into a state and return the resulting state."""
        with self._state_file(state) as path:
            self.run(
                ctx, "import", "-input=false", "-no-color", f"-state={path}", address, resource_id
            )
            return State(path.read_bytes())

    def plan(self, ctx: Context, state: State) -> bool:
        """Plan against a state snapshot and report whether there are changes.

        The backend is temporarily switched to local via an override file so
        that terraform reads the given snapshot instead of the remote state.
        The override is removed and the original backend re-initialized
        afterwards, also when init or plan fails or the run is cancelled.

        Returns:
            True if terraform reports a diff, False otherwise.

        Raises:
            TerraformExecError: If the override file cannot be written.
        """
        override = self.working_dir / OVERRIDE_FILENAME
        try:
            override.write_text(LOCAL_BACKEND_OVERRIDE)
        except OSError as e:
            raise TerraformExecError(f"failed to write {override}: {e}") from e

        try:
            self.init(ctx, "-reconfigure")
            with self._state_file(state) as path:
                _, returncode = self.run(
                    ctx,
                    "plan",
                    "-input=false",
                    "-no-color",
                    "-detailed-exitcode",
                    f"-state={path}",
                    ok_returncodes=(0, 2),
                )
        except BaseException:
            try:
                self._restore_backend(override)
            except (MigratorError, OSError) as e:
                logger.error(f"[exec] failed to restore the backend of {self.working_dir}: {e}")
            raise

        self._restore_backend(override)
        return returncode == 2

    def _restore_backend(self, override: Path) -> None:
        """Remove the local backend override and re-initialize the original backend.

        Runs with a fresh context so that a cancelled plan still restores it.
        """
        override.unlink(missing_ok=True)
        self.init(Context(), "-reconfigure")
