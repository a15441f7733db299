"""Command handlers: one per top-level command."""

from .base import CommandHandlerBase, LifecycleCommandHandler
from .configure import ConfigureCommandHandler
from .create import CreateCommandHandler
from .destroy import DestroyCommandHandler
from .errors import (
    CommandError,
    ConfigureCommandError,
    CreateCommandError,
    DestroyCommandError,
    ProvisionCommandError,
    PurgeCommandError,
    RegisterCommandError,
    ReleaseCommandError,
    RunCommandError,
    ShowCommandError,
)
from .provision import ProvisionCommandHandler
from .purge import PurgeCommandHandler
from .register import RegisterCommandHandler
from .release import ReleaseCommandHandler, RunCommandHandler
from .show import EnvironmentInfo, EnvironmentSummary, ListCommandHandler, ShowCommandHandler

__all__ = [
    "CommandError",
    "CommandHandlerBase",
    "ConfigureCommandError",
    "ConfigureCommandHandler",
    "CreateCommandError",
    "CreateCommandHandler",
    "DestroyCommandError",
    "DestroyCommandHandler",
    "EnvironmentInfo",
    "EnvironmentSummary",
    "LifecycleCommandHandler",
    "ListCommandHandler",
    "ProvisionCommandError",
    "ProvisionCommandHandler",
    "PurgeCommandError",
    "PurgeCommandHandler",
    "RegisterCommandError",
    "RegisterCommandHandler",
    "ReleaseCommandError",
    "ReleaseCommandHandler",
    "RunCommandError",
    "RunCommandHandler",
    "ShowCommandError",
    "ShowCommandHandler",
]
