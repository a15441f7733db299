"""Destroy command handler.

Destroy accepts an environment in any state. Whether infrastructure exists
is decided by the presence of the OpenTofu working directory, not by the
state tag: without that directory there is nothing tofu could destroy, so
teardown is skipped. Local cleanup always runs, which keeps destroy safe
to repeat after a partial failure.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..domain import Environment, StateTag
from ..errors import DeployerError
from ..output import NullOutput, UserOutput
from ..steps import (
    CleanupLocalState,
    InfrastructureTeardown,
    StepContext,
    StepFailedError,
    run_step,
)
from .base import CommandHandlerBase
from .errors import DestroyCommandError

logger = logging.getLogger(__name__)


class DestroyCommandHandler(CommandHandlerBase):
    command = "destroy"
    error_class = DestroyCommandError

    def execute(self, name: str, output: Optional[UserOutput] = None) -> Environment:
        output = output or NullOutput()
        environment = self._load(name)
        if environment.state is StateTag.DESTROYED:
            logger.info("[%s] already destroyed, nothing to do", name)
            output.info(f"Environment '{name}' is already destroyed")
            return environment

        logger.info("[%s] starting destroy from state %s", name, environment.state.value)
        started_at = self.clock()
        environment = environment.start_destroying()
        self._persist(environment)
        ctx = StepContext(environment=environment, tools=self.tools)

        teardown_error: Optional[StepFailedError] = None
        teardown_skipped = not environment.tofu_build_dir.is_dir()
        if not teardown_skipped:
            try:
                run_step(InfrastructureTeardown(), ctx, output, 1, 2)
            except StepFailedError as exc:
                teardown_error = exc
        else:
            logger.info(
                "[%s] skipping infrastructure teardown: no OpenTofu working directory at %s",
                name,
                environment.tofu_build_dir,
            )
            output.info("No infrastructure working directory found, skipping teardown")

        cleanup_error: Optional[StepFailedError] = None
        try:
            run_step(CleanupLocalState(preserve_tofu_dir=teardown_error is not None), ctx, output, 2, 2)
        except StepFailedError as exc:
            cleanup_error = exc

        if teardown_error is None and cleanup_error is None:
            destroyed = ctx.environment.destroyed()
            self._persist(destroyed)
            output.success(f"Environment '{name}' destroyed")
            return destroyed

        if teardown_error is not None:
            first = teardown_error
        else:
            first = cleanup_error
        failure = self._failure_context(ctx.environment, first.step_id, first.cause, started_at)
        failed: Optional[Environment] = ctx.environment.destroy_failed(failure)
        try:
            self.store.persist(failed)
        except DeployerError as persist_error:
            logger.error("[%s] could not persist DestroyFailed: %s", name, persist_error)
            failed = None

        message = self._describe(name, teardown_skipped, teardown_error, cleanup_error)
        output.error(message)
        raise DestroyCommandError(
            message,
            cause=first.cause,
            failed_step=first.step_id,
            environment=failed,
            teardown_error=teardown_error.cause if teardown_error else None,
            cleanup_error=cleanup_error.cause if cleanup_error else None,
        ) from first

    @staticmethod
    def _describe(
        name: str,
        teardown_skipped: bool,
        teardown_error: Optional[StepFailedError],
        cleanup_error: Optional[StepFailedError],
    ) -> str:
        if teardown_skipped:
            parts = ["infrastructure teardown skipped (no OpenTofu working directory)"]
        elif teardown_error is not None:
            parts = [f"infrastructure teardown failed: {teardown_error.cause}"]
        else:
            parts = ["infrastructure teardown succeeded"]
        if cleanup_error is not None:
            parts.append(f"local cleanup failed: {cleanup_error.cause}")
        elif teardown_error is not None:
            parts.append("local cleanup succeeded (OpenTofu working directory kept)")
        return f"Destroy of '{name}' failed; " + "; ".join(parts)
