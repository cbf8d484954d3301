"""State actions performed by a migration.

Each action takes a state snapshot and returns the updated snapshot; actions
are chained by threading the state returned by one into the next. Actions
are built from :class:`ActionSpec` models through ``ACTION_BUILDERS``.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from tfstate_migrator.errors import ExpansionError, MoveApplyError, TerraformCommandError
from tfstate_migrator.migrations.models import ActionSpec, ActionType
from tfstate_migrator.migrations.pattern import MoveOperation, count_wildcards, expand
from tfstate_migrator.tfexec import Context, State, TerraformCLI

logger = logging.getLogger(__name__)


class StateAction(Protocol):
    """Anything that turns one state snapshot into another."""

    def state_update(self, ctx: Context, tf: TerraformCLI, state: State) -> State: ...


class StateMvAction:
    """Moves a resource or module from one address to another."""

    def __init__(self, source: str, destination: str) -> None:
        self.source = source
        self.destination = destination

    def __repr__(self) -> str:
        return f"StateMvAction({self.source!r}, {self.destination!r})"

    def state_update(self, ctx: Context, tf: TerraformCLI, state: State) -> State:
        """Move source to destination and return the new state.

        Raises:
            MoveApplyError: If terraform rejects the move, e.g. the source is
                missing or the destination already exists.
        """
        logger.info(f"[action] state mv {self.source} {self.destination}")
        try:
            return tf.state_mv(ctx, state, self.source, self.destination)
        except TerraformCommandError as e:
            raise MoveApplyError(self.source, self.destination, e) from e


class StateXMvAction:
    """Moves every address matching a wildcard source.

    The source may contain ``*`` wildcards, each matching one address
    segment; the destination refers to the captured segments as ``$1``,
    ``$2``... The state is listed once, then one move is applied per match,
    each against the state returned by the previous move. A failing move
    aborts the action; earlier moves are not rolled back.
    """

    def __init__(self, source: str, destination: str) -> None:
        self.source = source
        self.destination = destination

    def __repr__(self) -> str:
        return f"StateXMvAction({self.source!r}, {self.destination!r})"

    def state_update(self, ctx: Context, tf: TerraformCLI, state: State) -> State:
        """Expand the wildcard against the state and apply the resulting moves."""
        for action in self.generate_mv_actions(ctx, tf, state):
            state = action.state_update(ctx, tf, state)
        return state

    def generate_mv_actions(
        self, ctx: Context, tf: TerraformCLI, state: State
    ) -> list[StateMvAction]:
        """List the state and return one mv action per matching address."""
        if count_wildcards(self.source) == 0:
            return self.mv_actions_for_listing([])

        try:
            listing = tf.state_list(ctx, state)
        except TerraformCommandError as e:
            raise ExpansionError(f"failed to list state for {self.source}: {e}") from e

        return self.mv_actions_for_listing(listing)

    def mv_actions_for_listing(self, listing: Sequence[str]) -> list[StateMvAction]:
        """Return mv actions for the addresses in a given listing."""
        operations: list[MoveOperation] = expand(listing, self.source, self.destination)
        logger.info(f"[action] {self.source} matched {len(operations)} address(es)")
        return [StateMvAction(op.source, op.destination) for op in operations]


class StateRmAction:
    """Removes addresses from the state without destroying the objects."""

    def __init__(self, addresses: Sequence[str]) -> None:
        self.addresses = list(addresses)

    def __repr__(self) -> str:
        return f"StateRmAction({self.addresses!r})"

    def state_update(self, ctx: Context, tf: TerraformCLI, state: State) -> State:
        logger.info(f"[action] state rm {' '.join(self.addresses)}")
        return tf.state_rm(ctx, state, self.addresses)


class StateImportAction:
    """Imports an existing object into the state."""

    def __init__(self, address: str, resource_id: str) -> None:
        self.address = address
        self.resource_id = resource_id

    def __repr__(self) -> str:
        return f"StateImportAction({self.address!r}, {self.resource_id!r})"

    def state_update(self, ctx: Context, tf: TerraformCLI, state: State) -> State:
        logger.info(f"[action] import {self.address} {self.resource_id}")
        return tf.import_resource(ctx, state, self.address, self.resource_id)


# Action builder registry
ACTION_BUILDERS: dict[ActionType, Callable[[ActionSpec], StateAction]] = {
    ActionType.MV: lambda spec: StateMvAction(spec.from_address, spec.to_address),
    ActionType.XMV: lambda spec: StateXMvAction(spec.from_address, spec.to_address),
    ActionType.RM: lambda spec: StateRmAction(spec.addresses),
    ActionType.IMPORT: lambda spec: StateImportAction(spec.address, spec.id),
}


def build_action(spec: ActionSpec) -> StateAction:
    """Build a state action from its migration file definition."""
    return ACTION_BUILDERS[spec.type](spec)


def apply_actions(
    ctx: Context, tf: TerraformCLI, state: State, actions: Sequence[StateAction]
) -> State:
    """Apply actions in order, threading the state through them.

    Stops at the first failing action and propagates its error.
    """
    for i, action in enumerate(actions, 1):
        logger.info(f"[migrator] action {i}/{len(actions)}: {action!r}")
        state = action.state_update(ctx, tf, state)
    return state
