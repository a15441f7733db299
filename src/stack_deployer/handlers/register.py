"""Register command handler: adopt an instance that already exists."""

from __future__ import annotations

import logging
from typing import List, Optional

from ..domain import Environment, StateTag
from ..errors import DeployerError
from ..output import NullOutput, UserOutput
from ..steps import (
    RenderConfigurationTemplates,
    Step,
    StepContext,
    StepFailedError,
    WaitForConnectivity,
    run_steps,
)
from .base import CommandHandlerBase
from .errors import RegisterCommandError

logger = logging.getLogger(__name__)


def register_steps() -> List[Step]:
    return [WaitForConnectivity(), RenderConfigurationTemplates()]


class RegisterCommandHandler(CommandHandlerBase):
    """Moves a Created environment to Provisioned using an existing instance.

    Nothing is provisioned: the instance must already be reachable over SSH
    with the environment's credentials. A failed registration persists
    nothing, so the environment stays Created and can be registered again.
    Registered environments never get an OpenTofu working directory, which
    makes destroy skip the infrastructure teardown for them.
    """

    command = "register"
    error_class = RegisterCommandError
    start_states = frozenset({StateTag.CREATED})

    def execute(self, name: str, instance_ip: str, output: Optional[UserOutput] = None) -> Environment:
        output = output or NullOutput()
        environment = self._load(name)
        self._check_start_state(environment, self.start_states)
        try:
            candidate = environment.with_instance_ip(instance_ip)
        except DeployerError as exc:
            raise self._error(f"Cannot register '{name}': {exc}", cause=exc) from exc

        logger.info("[%s] registering existing instance at %s", name, candidate.instance_ip)
        ctx = StepContext(environment=candidate, tools=self.tools)
        try:
            run_steps(register_steps(), ctx, output)
        except StepFailedError as exc:
            logger.warning(
                "[%s] registration failed at %s, state left at %s", name, exc.step_id, environment.state.value
            )
            output.error(f"Register failed at step {exc.step_id}: {exc.cause}")
            raise self._error(
                f"Register of '{name}' failed at step {exc.step_id}: {exc.cause}",
                cause=exc.cause,
                failed_step=exc.step_id,
            ) from exc

        registered = environment.registered(instance_ip)
        self._persist(registered)
        output.success(f"Environment '{name}' registered with instance {registered.instance_ip}")
        return registered
