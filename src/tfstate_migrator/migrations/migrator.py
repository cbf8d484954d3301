"""Per-file state migration: plan against a snapshot, then push on apply."""

import logging

from tfstate_migrator.errors import PlanHasChangesError
from tfstate_migrator.migrations.actions import StateAction, apply_actions, build_action
from tfstate_migrator.migrations.models import MigrationConfig
from tfstate_migrator.tfexec import Context, State, TerraformCLI

logger = logging.getLogger(__name__)


class StateMigrator:
    """Runs the actions of one state migration.

    ``plan`` never touches the remote state: it pulls a snapshot, applies the
    actions to the snapshot and checks that terraform plans no changes
    against the result. ``apply`` does the same and then pushes the migrated
    snapshot back.

    Attributes:
        config: The migration definition.
        tf: Terraform wrapper bound to the migration's working directory.
        actions: State actions built from the definition.
    """

    def __init__(self, config: MigrationConfig, tf: TerraformCLI) -> None:
        self.config = config
        self.tf = tf
        self.actions: list[StateAction] = [build_action(spec) for spec in config.actions]

    def _plan(self, ctx: Context) -> State:
        logger.info(f"[migrator@{self.config.dir}] pull the current state")
        state = self.tf.state_pull(ctx)

        state = apply_actions(ctx, self.tf, state, self.actions)

        if self.config.force:
            logger.info(f"[migrator@{self.config.dir}] skip plan check (force)")
            return state

        logger.info(f"[migrator@{self.config.dir}] check diffs")
        if self.tf.plan(ctx, state):
            raise PlanHasChangesError(
                f"terraform plan shows changes after migration {self.config.name}; "
                "set force to apply anyway"
            )
        return state

    def plan(self, ctx: Context) -> State:
        """Compute the migrated state without pushing it."""
        return self._plan(ctx)

    def apply(self, ctx: Context) -> None:
        """Compute the migrated state and push it to the backend."""
        state = self._plan(ctx)
        logger.info(f"[migrator@{self.config.dir}] push the new state")
        self.tf.state_push(ctx, state)
