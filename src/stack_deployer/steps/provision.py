"""Steps that create infrastructure and make it reachable."""

from __future__ import annotations

import logging
from typing import Any, Dict

from ..domain import Environment, HetznerConfig, LxdConfig
from ..errors import ConfigurationError
from .base import Step, StepContext

logger = logging.getLogger(__name__)


def tofu_template_context(environment: Environment) -> Dict[str, Any]:
    credentials = environment.ssh_credentials
    context: Dict[str, Any] = {
        "instance_name": str(environment.context.instance_name),
        "ssh_username": credentials.username,
        "ssh_port": credentials.port,
        "ssh_public_key": credentials.read_public_key(),
    }
    provider = environment.provider_config
    if isinstance(provider, LxdConfig):
        context["profile_name"] = provider.profile_name
    elif isinstance(provider, HetznerConfig):
        context.update(
            hcloud_api_token=provider.api_token,
            server_type=provider.server_type,
            location=provider.location,
            image=provider.image,
        )
    else:  # pragma: no cover - closed variant
        raise ConfigurationError(f"Unsupported provider configuration {provider!r}")
    return context


def ansible_template_context(environment: Environment, instance_ip: str) -> Dict[str, Any]:
    credentials = environment.ssh_credentials
    return {
        "instance_name": str(environment.context.instance_name),
        "instance_ip": instance_ip,
        "ssh_port": credentials.port,
        "ssh_username": credentials.username,
        "ssh_private_key_path": str(credentials.private_key_path),
    }


class RenderTemplates(Step):
    step_id = "RenderTemplates"
    description = "Rendering OpenTofu templates"

    def execute(self, ctx: StepContext) -> None:
        environment = ctx.environment
        template_set = f"tofu/{environment.provider_config.provider.value}"
        ctx.tools.renderer().render(
            template_set, tofu_template_context(environment), environment.tofu_build_dir
        )


class InitInfrastructure(Step):
    step_id = "InitInfrastructure"
    description = "Initializing OpenTofu working directory"

    def execute(self, ctx: StepContext) -> None:
        ctx.tools.tofu(ctx.environment.tofu_build_dir).init()


class ValidateInfrastructure(Step):
    step_id = "ValidateInfrastructure"
    description = "Validating infrastructure configuration"

    def execute(self, ctx: StepContext) -> None:
        ctx.tools.tofu(ctx.environment.tofu_build_dir).validate()


class PlanInfrastructure(Step):
    step_id = "PlanInfrastructure"
    description = "Planning infrastructure changes"

    def execute(self, ctx: StepContext) -> None:
        ctx.tools.tofu(ctx.environment.tofu_build_dir).plan()


class RunApply(Step):
    step_id = "RunApply"
    description = "Applying infrastructure changes"

    def execute(self, ctx: StepContext) -> None:
        ctx.tools.tofu(ctx.environment.tofu_build_dir).apply(auto_approve=True)


class ParseOutput(Step):
    step_id = "ParseOutput"
    description = "Reading instance information"

    def execute(self, ctx: StepContext) -> None:
        info = ctx.tools.tofu(ctx.environment.tofu_build_dir).instance_info()
        ctx.values["instance_info"] = info
        ctx.environment = ctx.environment.with_instance_ip(info.ip_address)
        logger.info(
            "[%s] instance %s is %s at %s", ctx.environment.name, info.name, info.status, info.ip_address
        )


class RenderConfigurationTemplates(Step):
    step_id = "RenderConfigurationTemplates"
    description = "Rendering Ansible templates"

    def execute(self, ctx: StepContext) -> None:
        ip = ctx.require_instance_ip()
        ctx.tools.renderer().render(
            "ansible",
            ansible_template_context(ctx.environment, ip),
            ctx.environment.ansible_build_dir,
        )


class WaitForConnectivity(Step):
    step_id = "WaitForConnectivity"
    description = "Waiting for SSH connectivity"

    def execute(self, ctx: StepContext) -> None:
        ip = ctx.require_instance_ip()
        ctx.tools.prober().wait_until_reachable(ip, ctx.environment.ssh_credentials)


class WaitForCloudInit(Step):
    step_id = "WaitForCloudInit"
    description = "Waiting for cloud-init to finish"

    def execute(self, ctx: StepContext) -> None:
        ctx.tools.ansible(ctx.environment.ansible_build_dir).run_playbook("wait-cloud-init")


def provision_steps() -> list[Step]:
    return [
        RenderTemplates(),
        InitInfrastructure(),
        ValidateInfrastructure(),
        PlanInfrastructure(),
        RunApply(),
        ParseOutput(),
        RenderConfigurationTemplates(),
        WaitForConnectivity(),
        WaitForCloudInit(),
    ]
