"""Declarative Terraform state migrations.

This package provides the migration file models, the state actions they
describe (mv, xmv, rm, import) and the migrator that applies them to a
state snapshot.

Example usage:
    ```python
    from tfstate_migrator.migrations import StateXMvAction
    from tfstate_migrator.tfexec import Context, TerraformCLI

    tf = TerraformCLI(Path("envs/dev"))
    ctx = Context()
    state = tf.state_pull(ctx)
    action = StateXMvAction("module.app[*].aws_instance.web", "module.web[$1].aws_instance.this")
    state = action.state_update(ctx, tf, state)
    ```
"""

from tfstate_migrator.migrations.actions import (
    StateAction,
    StateImportAction,
    StateMvAction,
    StateRmAction,
    StateXMvAction,
    build_action,
)
from tfstate_migrator.migrations.migrator import StateMigrator
from tfstate_migrator.migrations.models import ActionSpec, ActionType, MigrationConfig
from tfstate_migrator.migrations.pattern import MoveOperation, compile_pattern, expand

__all__ = [
    "ActionSpec",
    "ActionType",
    "MigrationConfig",
    "MoveOperation",
    "StateAction",
    "StateImportAction",
    "StateMigrator",
    "StateMvAction",
    "StateRmAction",
    "StateXMvAction",
    "build_action",
    "compile_pattern",
    "expand",
]
