"""Configuration steps: one playbook each."""

from __future__ import annotations

from .base import Step, StepContext


class PlaybookStep(Step):
    playbook: str = ""

    def execute(self, ctx: StepContext) -> None:
        ctx.tools.ansible(ctx.environment.ansible_build_dir).run_playbook(self.playbook)


class InstallDocker(PlaybookStep):
    step_id = "InstallDocker"
    description = "Installing Docker"
    playbook = "install-docker"


class InstallDockerCompose(PlaybookStep):
    step_id = "InstallDockerCompose"
    description = "Installing Docker Compose"
    playbook = "install-docker-compose"


class ConfigureSecurityUpdates(PlaybookStep):
    step_id = "ConfigureSecurityUpdates"
    description = "Configuring automatic security updates"
    playbook = "configure-security-updates"


class ConfigureFirewall(PlaybookStep):
    step_id = "ConfigureFirewall"
    description = "Configuring UFW firewall"
    playbook = "configure-firewall"
