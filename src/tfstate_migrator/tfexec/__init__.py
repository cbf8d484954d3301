"""Terraform execution layer.

Provides the state snapshot type, the run context used for cancellation,
and the subprocess-based terraform wrapper.
"""

from tfstate_migrator.tfexec.state import Context, State
from tfstate_migrator.tfexec.terraform import TerraformCLI

__all__ = [
    "Context",
    "State",
    "TerraformCLI",
]
