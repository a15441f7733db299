"""Release and run steps for the application stack."""

from __future__ import annotations

from dataclasses import dataclass

from .base import Step, StepContext
from .configure import PlaybookStep

REMOTE_APP_DIR = "/opt/stack"


@dataclass(frozen=True)
class ReleaseSettings:
    """Values rendered into the docker compose files."""

    image: str = "nginx:stable"
    http_port: int = 80
    remote_app_dir: str = REMOTE_APP_DIR


class CreateAppStorage(Step):
    step_id = "CreateAppStorage"
    description = "Creating application storage directories"

    def __init__(self, settings: ReleaseSettings) -> None:
        self.settings = settings

    def execute(self, ctx: StepContext) -> None:
        ctx.tools.ansible(ctx.environment.ansible_build_dir).run_playbook(
            "create-app-storage", extra_vars={"remote_app_dir": self.settings.remote_app_dir}
        )


class RenderComposeTemplates(Step):
    step_id = "RenderComposeTemplates"
    description = "Rendering docker compose files"

    def __init__(self, settings: ReleaseSettings) -> None:
        self.settings = settings

    def execute(self, ctx: StepContext) -> None:
        environment = ctx.environment
        ctx.tools.renderer().render(
            "docker-compose",
            {
                "environment_name": str(environment.name),
                "image": self.settings.image,
                "http_port": self.settings.http_port,
                "remote_app_dir": self.settings.remote_app_dir,
            },
            environment.compose_build_dir,
        )


class DeployComposeFiles(Step):
    step_id = "DeployComposeFiles"
    description = "Copying docker compose files to the instance"

    def __init__(self, settings: ReleaseSettings) -> None:
        self.settings = settings

    def execute(self, ctx: StepContext) -> None:
        environment = ctx.environment
        ctx.tools.ansible(environment.ansible_build_dir).run_playbook(
            "deploy-compose-files",
            extra_vars={
                "compose_source_dir": str(environment.compose_build_dir),
                "remote_app_dir": self.settings.remote_app_dir,
            },
        )


class StartServices(PlaybookStep):
    step_id = "StartServices"
    description = "Starting application services"
    playbook = "run-compose-services"

    def __init__(self, settings: ReleaseSettings) -> None:
        self.settings = settings

    def execute(self, ctx: StepContext) -> None:
        ctx.tools.ansible(ctx.environment.ansible_build_dir).run_playbook(
            self.playbook, extra_vars={"remote_app_dir": self.settings.remote_app_dir}
        )
