"""Shared machinery for the lifecycle command handlers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, FrozenSet, List, Optional, Type

from ..domain import Environment, FailureContext, StateTag, utc_now
from ..errors import DeployerError, WrongStateError
from ..output import NullOutput, UserOutput
from ..persistence import EnvironmentStore
from ..steps import Step, StepContext, StepFailedError, run_steps
from ..tools.factory import ToolFactory
from ..trace import write_trace
from .errors import CommandError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class CommandHandlerBase:
    """Store access and failure recording shared by every handler."""

    command: str = ""
    error_class: Type[CommandError] = CommandError

    def __init__(self, store: EnvironmentStore, tools: ToolFactory, clock: Clock = utc_now) -> None:
        self.store = store
        self.tools = tools
        self.clock = clock

    def _error(self, message: str, **kwargs) -> CommandError:
        return self.error_class(message, **kwargs)

    def _load(self, name: str) -> Environment:
        try:
            return self.store.load(name)
        except DeployerError as exc:
            raise self._error(f"Cannot {self.command} '{name}': {exc}", cause=exc) from exc

    def _persist(self, environment: Environment) -> None:
        try:
            self.store.persist(environment)
        except DeployerError as exc:
            raise self._error(
                f"Cannot {self.command} '{environment.name}': {exc}", cause=exc
            ) from exc
        logger.info("[%s] state is now %s", environment.name, environment.state.value)

    def _check_start_state(self, environment: Environment, allowed: FrozenSet[StateTag]) -> None:
        if environment.state in allowed:
            return
        error = WrongStateError(
            f"{self.command} environment '{environment.name}'",
            sorted(tag.value for tag in allowed),
            environment.state.value,
        )
        logger.warning("[%s] %s", environment.name, error)
        raise self._error(str(error), cause=error)

    def _failure_context(
        self,
        environment: Environment,
        failed_step: str,
        cause: DeployerError,
        started_at: datetime,
    ) -> FailureContext:
        occurred_at = self.clock()
        trace_path = write_trace(
            environment,
            self.command,
            failed_step,
            cause,
            occurred_at=occurred_at,
            started_at=started_at,
        )
        return FailureContext(
            failed_step=failed_step,
            error_kind=cause.kind,
            error_summary=str(cause),
            occurred_at=occurred_at,
            execution_started_at=started_at,
            trace_file_path=trace_path,
        )


class LifecycleCommandHandler(CommandHandlerBase, ABC):
    """Drives one forward lifecycle phase.

    1. refuse environments outside `start_states` (nothing is persisted);
    2. persist the in-progress tag, when the phase has one;
    3. run the steps, stopping at the first failure and persisting the
       failed tag with a `FailureContext` naming that step;
    4. persist the success tag.
    """

    start_states: FrozenSet[StateTag] = frozenset()
    in_progress_state: Optional[StateTag] = None
    success_state: StateTag
    failed_state: StateTag

    @abstractmethod
    def build_steps(self, environment: Environment) -> List[Step]:
        raise NotImplementedError

    def execute(self, name: str, output: Optional[UserOutput] = None) -> Environment:
        output = output or NullOutput()
        environment = self._load(name)
        self._check_start_state(environment, self.start_states)

        logger.info("[%s] starting %s from state %s", name, self.command, environment.state.value)
        started_at = self.clock()
        if self.in_progress_state is not None:
            environment = environment.transition_to(self.in_progress_state)
            self._persist(environment)

        ctx = StepContext(environment=environment, tools=self.tools)
        try:
            run_steps(self.build_steps(environment), ctx, output)
        except StepFailedError as exc:
            failed = self._record_failure(ctx.environment, exc, started_at)
            output.error(f"{self.command.capitalize()} failed at step {exc.step_id}: {exc.cause}")
            raise self._error(
                f"{self.command.capitalize()} of '{name}' failed at step {exc.step_id}: {exc.cause}",
                cause=exc.cause,
                failed_step=exc.step_id,
                environment=failed,
            ) from exc

        environment = ctx.environment.transition_to(self.success_state)
        self._persist(environment)
        output.success(f"Environment '{name}' is {environment.state.value}")
        return environment

    def _record_failure(
        self, environment: Environment, exc: StepFailedError, started_at: datetime
    ) -> Optional[Environment]:
        failure = self._failure_context(environment, exc.step_id, exc.cause, started_at)
        failed = environment.fail_with(self.failed_state, failure)
        try:
            self.store.persist(failed)
        except DeployerError as persist_error:
            logger.error("[%s] could not persist %s: %s", environment.name, failed.state.value, persist_error)
            return None
        logger.info("[%s] state is now %s (step %s)", environment.name, failed.state.value, exc.step_id)
        return failed
