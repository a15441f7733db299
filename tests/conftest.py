from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import pytest

from fakes import FakeToolFactory, FixedClock, environment_config
from stack_deployer.domain import Environment
from stack_deployer.handlers import CreateCommandHandler
from stack_deployer.persistence import EnvironmentStore


@dataclass
class Workspace:
    root: Path
    store: EnvironmentStore
    build_root: Path
    tools: FakeToolFactory
    clock: FixedClock

    def create(self, name: str = "demo", provider: Optional[Dict[str, Any]] = None) -> Environment:
        handler = CreateCommandHandler(self.store, self.build_root, self.clock)
        return handler.execute(environment_config(self.root, name, provider))

    def state_bytes(self, name: str = "demo") -> bytes:
        return self.store.state_file(name).read_bytes()


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(
        root=tmp_path,
        store=EnvironmentStore(tmp_path / "data"),
        build_root=tmp_path / "build",
        tools=FakeToolFactory(),
        clock=FixedClock(),
    )
