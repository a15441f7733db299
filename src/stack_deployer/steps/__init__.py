"""Units of work executed by command handlers."""

from .base import Step, StepContext, StepFailedError, run_step, run_steps
from .configure import (
    ConfigureFirewall,
    ConfigureSecurityUpdates,
    InstallDocker,
    InstallDockerCompose,
    PlaybookStep,
)
from .destroy import CleanupLocalState, InfrastructureTeardown
from .provision import (
    InitInfrastructure,
    ParseOutput,
    PlanInfrastructure,
    RenderConfigurationTemplates,
    RenderTemplates,
    RunApply,
    ValidateInfrastructure,
    WaitForCloudInit,
    WaitForConnectivity,
    provision_steps,
)
from .release import (
    CreateAppStorage,
    DeployComposeFiles,
    ReleaseSettings,
    RenderComposeTemplates,
    StartServices,
)

__all__ = [
    "CleanupLocalState",
    "ConfigureFirewall",
    "ConfigureSecurityUpdates",
    "CreateAppStorage",
    "DeployComposeFiles",
    "InfrastructureTeardown",
    "InitInfrastructure",
    "InstallDocker",
    "InstallDockerCompose",
    "ParseOutput",
    "PlanInfrastructure",
    "PlaybookStep",
    "ReleaseSettings",
    "RenderComposeTemplates",
    "RenderConfigurationTemplates",
    "RenderTemplates",
    "RunApply",
    "StartServices",
    "Step",
    "StepContext",
    "StepFailedError",
    "ValidateInfrastructure",
    "WaitForCloudInit",
    "WaitForConnectivity",
    "provision_steps",
    "run_step",
    "run_steps",
]
