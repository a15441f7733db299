"""Release and run command handlers."""

from __future__ import annotations

from typing import List, Optional

from ..domain import Environment, StateTag, utc_now
from ..persistence import EnvironmentStore
from ..steps import (
    CreateAppStorage,
    DeployComposeFiles,
    ReleaseSettings,
    RenderComposeTemplates,
    StartServices,
    Step,
)
from ..tools.factory import ToolFactory
from .base import Clock, LifecycleCommandHandler
from .errors import ReleaseCommandError, RunCommandError


class _StackHandler(LifecycleCommandHandler):
    def __init__(
        self,
        store: EnvironmentStore,
        tools: ToolFactory,
        clock: Clock = utc_now,
        *,
        settings: Optional[ReleaseSettings] = None,
    ) -> None:
        super().__init__(store, tools, clock)
        self.settings = settings or ReleaseSettings()


class ReleaseCommandHandler(_StackHandler):
    command = "release"
    error_class = ReleaseCommandError
    start_states = frozenset({StateTag.CONFIGURED, StateTag.RELEASE_FAILED})
    in_progress_state = StateTag.RELEASING
    success_state = StateTag.RELEASED
    failed_state = StateTag.RELEASE_FAILED

    def build_steps(self, environment: Environment) -> List[Step]:
        return [
            CreateAppStorage(self.settings),
            RenderComposeTemplates(self.settings),
            DeployComposeFiles(self.settings),
        ]


class RunCommandHandler(_StackHandler):
    """Starts the released stack. Run has no in-progress state."""

    command = "run"
    error_class = RunCommandError
    start_states = frozenset({StateTag.RELEASED, StateTag.RUN_FAILED})
    in_progress_state = None
    success_state = StateTag.RUNNING
    failed_state = StateTag.RUN_FAILED

    def build_steps(self, environment: Environment) -> List[Step]:
        return [StartServices(self.settings)]
