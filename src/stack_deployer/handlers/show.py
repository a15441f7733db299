"""Read-only show and list handlers."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from ..domain import Environment, redacted
from ..errors import DeployerError
from ..persistence import EnvironmentStore
from .errors import ShowCommandError

logger = logging.getLogger(__name__)


@dataclass
class EnvironmentInfo:
    name: str
    state: str
    provider: str
    instance_name: str
    instance_ip: Optional[str]
    created_at: str
    ssh_username: str
    ssh_port: int
    data_dir: str
    build_dir: str
    provider_config: Dict[str, Any]
    failure: Optional[Dict[str, Any]] = None

    @classmethod
    def from_environment(cls, environment: Environment) -> "EnvironmentInfo":
        context = environment.context
        return cls(
            name=str(context.name),
            state=environment.state.value,
            provider=context.provider_config.provider.value,
            instance_name=str(context.instance_name),
            instance_ip=str(context.instance_ip) if context.instance_ip else None,
            created_at=context.created_at.isoformat(),
            ssh_username=context.ssh_credentials.username,
            ssh_port=context.ssh_credentials.port,
            data_dir=str(context.data_dir),
            build_dir=str(context.build_dir),
            provider_config=redacted(context.provider_config),
            failure=environment.failure.to_dict() if environment.failure else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EnvironmentSummary:
    name: str
    state: Optional[str] = None
    provider: Optional[str] = None
    instance_ip: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ShowCommandHandler:
    def __init__(self, store: EnvironmentStore) -> None:
        self.store = store

    def execute(self, name: str) -> EnvironmentInfo:
        try:
            environment = self.store.load(name)
        except DeployerError as exc:
            raise ShowCommandError(f"Cannot show '{name}': {exc}", cause=exc) from exc
        return EnvironmentInfo.from_environment(environment)


class ListCommandHandler:
    """Summarizes every environment under the data root.

    An unreadable state file becomes a summary with `error` set instead of
    failing the whole listing.
    """

    def __init__(self, store: EnvironmentStore) -> None:
        self.store = store

    def execute(self) -> List[EnvironmentSummary]:
        summaries = []
        for name in self.store.list_names():
            try:
                environment = self.store.load(name)
            except DeployerError as exc:
                logger.warning("Skipping unreadable environment %s: %s", name, exc)
                summaries.append(EnvironmentSummary(name=name, error=str(exc)))
                continue
            summaries.append(
                EnvironmentSummary(
                    name=name,
                    state=environment.state.value,
                    provider=environment.provider_config.provider.value,
                    instance_ip=str(environment.instance_ip) if environment.instance_ip else None,
                )
            )
        return summaries
