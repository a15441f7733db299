"""Step abstraction and the fail-fast step runner."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Sequence

from ..domain import Environment
from ..errors import ConfigurationError, DeployerError, FileSystemError
from ..output import UserOutput
from ..tools.factory import ToolFactory

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """Command-scoped record shared by the steps of one execution.

    `environment` may be replaced by a step (for instance once the instance
    IP is known) so later steps and the failure path observe the update.
    """

    environment: Environment
    tools: ToolFactory
    values: Dict[str, Any] = field(default_factory=dict)

    def require_instance_ip(self) -> str:
        ip = self.environment.instance_ip
        if ip is None:
            raise ConfigurationError(
                f"Environment '{self.environment.name}' has no instance IP; provision it first"
            )
        return str(ip)


class Step(ABC):
    step_id: str = ""
    description: str = ""

    @abstractmethod
    def execute(self, ctx: StepContext) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<Step {self.step_id}>"


class StepFailedError(DeployerError):
    """A step raised; carries the step identifier and the original error."""

    def __init__(self, step_id: str, cause: DeployerError) -> None:
        self.step_id = step_id
        self.cause = cause
        self.kind = cause.kind
        super().__init__(f"Step {step_id} failed: {cause}")

    def help(self) -> str:
        return self.cause.help()


def run_step(step: Step, ctx: StepContext, output: UserOutput, index: int = 1, total: int = 1) -> None:
    output.progress(index, total, step.description or step.step_id)
    logger.info("[%s] step %d/%d %s", ctx.environment.name, index, total, step.step_id)
    try:
        step.execute(ctx)
    except DeployerError as exc:
        logger.error("[%s] step %s failed: %s", ctx.environment.name, step.step_id, exc)
        raise StepFailedError(step.step_id, exc) from exc
    except OSError as exc:
        error = FileSystemError(f"complete step {step.step_id} on", Path(exc.filename or "."), exc)
        error.__cause__ = exc
        logger.error("[%s] step %s failed: %s", ctx.environment.name, step.step_id, error)
        raise StepFailedError(step.step_id, error) from error


def run_steps(steps: Sequence[Step], ctx: StepContext, output: UserOutput) -> None:
    """Run `steps` in order; the first failure stops the sequence."""
    total = len(steps)
    for index, step in enumerate(steps, start=1):
        run_step(step, ctx, output, index, total)
