"""Configure command handler."""

from __future__ import annotations

import logging
from typing import List

from ..domain import Environment, Provider, StateTag, utc_now
from ..errors import ConfigurationError
from ..persistence import EnvironmentStore
from ..steps import (
    ConfigureFirewall,
    ConfigureSecurityUpdates,
    InstallDocker,
    InstallDockerCompose,
    Step,
)
from ..tools.factory import ToolFactory
from .base import Clock, LifecycleCommandHandler
from .errors import ConfigureCommandError

logger = logging.getLogger(__name__)

FIREWALL_MODES = ("auto", "always", "never")

# Providers whose instances are exposed on a public network.
PUBLIC_PROVIDERS = frozenset({Provider.HETZNER})


class ConfigureCommandHandler(LifecycleCommandHandler):
    command = "configure"
    error_class = ConfigureCommandError
    start_states = frozenset({StateTag.PROVISIONED, StateTag.CONFIGURE_FAILED})
    in_progress_state = StateTag.CONFIGURING
    success_state = StateTag.CONFIGURED
    failed_state = StateTag.CONFIGURE_FAILED

    def __init__(
        self,
        store: EnvironmentStore,
        tools: ToolFactory,
        clock: Clock = utc_now,
        *,
        firewall: str = "auto",
    ) -> None:
        if firewall not in FIREWALL_MODES:
            raise ConfigurationError(
                f"Invalid firewall mode '{firewall}' (expected one of: {', '.join(FIREWALL_MODES)})"
            )
        super().__init__(store, tools, clock)
        self.firewall = firewall

    def firewall_enabled(self, environment: Environment) -> bool:
        if self.firewall == "always":
            return True
        if self.firewall == "never":
            return False
        return environment.provider_config.provider in PUBLIC_PROVIDERS

    def build_steps(self, environment: Environment) -> List[Step]:
        steps: List[Step] = [InstallDocker(), InstallDockerCompose(), ConfigureSecurityUpdates()]
        if self.firewall_enabled(environment):
            steps.append(ConfigureFirewall())
        else:
            logger.info(
                "[%s] skipping firewall configuration (provider %s, mode %s)",
                environment.name,
                environment.provider_config.provider.value,
                self.firewall,
            )
        return steps
