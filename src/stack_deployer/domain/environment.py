"""The Environment entity and its lifecycle transitions."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Union

from ..errors import ValidationError, WrongStateError
from ..ssh.credentials import SSHCredentials
from .names import EnvironmentName, InstanceName
from .provider import ProviderConfig
from .state import FailureContext, StateTag

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_ALL_TAGS: FrozenSet[StateTag] = frozenset(StateTag)

# Allowed predecessors for each target tag.
TRANSITIONS: Dict[StateTag, FrozenSet[StateTag]] = {
    StateTag.PROVISIONING: frozenset({StateTag.CREATED, StateTag.PROVISION_FAILED}),
    StateTag.PROVISIONED: frozenset({StateTag.PROVISIONING}),
    StateTag.PROVISION_FAILED: frozenset({StateTag.PROVISIONING}),
    StateTag.CONFIGURING: frozenset({StateTag.PROVISIONED, StateTag.CONFIGURE_FAILED}),
    StateTag.CONFIGURED: frozenset({StateTag.CONFIGURING}),
    StateTag.CONFIGURE_FAILED: frozenset({StateTag.CONFIGURING}),
    StateTag.RELEASING: frozenset({StateTag.CONFIGURED, StateTag.RELEASE_FAILED}),
    StateTag.RELEASED: frozenset({StateTag.RELEASING}),
    StateTag.RELEASE_FAILED: frozenset({StateTag.RELEASING}),
    StateTag.RUNNING: frozenset({StateTag.RELEASED, StateTag.RUN_FAILED}),
    StateTag.RUN_FAILED: frozenset({StateTag.RELEASED, StateTag.RUN_FAILED}),
    StateTag.DESTROYING: _ALL_TAGS,
    StateTag.DESTROYED: frozenset({StateTag.DESTROYING}),
    StateTag.DESTROY_FAILED: frozenset({StateTag.DESTROYING}),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EnvironmentContext:
    """Identity, configuration and runtime facts of one environment."""

    name: EnvironmentName
    instance_name: InstanceName
    provider_config: ProviderConfig
    ssh_credentials: SSHCredentials
    created_at: datetime
    data_dir: Path
    build_dir: Path
    instance_ip: Optional[IPAddress] = None


@dataclass(frozen=True)
class Environment:
    """Environment value tagged with its lifecycle position.

    Values are immutable: every transition returns a new Environment.
    A ``*Failed`` tag always carries a `FailureContext` and no other tag
    does. Use `Environment.create` for new environments and the transition
    methods afterwards; direct construction is reserved for the state store.
    """

    context: EnvironmentContext
    state: StateTag
    failure: Optional[FailureContext] = None

    def __post_init__(self) -> None:
        if not isinstance(self.state, StateTag):
            object.__setattr__(self, "state", StateTag(self.state))
        if self.state.is_failed and self.failure is None:
            raise ValidationError(f"State '{self.state.value}' requires a failure context")
        if not self.state.is_failed and self.failure is not None:
            raise ValidationError(f"State '{self.state.value}' cannot carry a failure context")

    @classmethod
    def create(
        cls,
        name: str,
        provider_config: ProviderConfig,
        ssh_credentials: SSHCredentials,
        *,
        data_root: Path,
        build_root: Path,
        created_at: Optional[datetime] = None,
    ) -> "Environment":
        env_name = EnvironmentName(name)
        context = EnvironmentContext(
            name=env_name,
            instance_name=InstanceName.for_environment(env_name),
            provider_config=provider_config,
            ssh_credentials=ssh_credentials,
            created_at=created_at or utc_now(),
            data_dir=Path(data_root).resolve() / env_name,
            build_dir=Path(build_root).resolve() / env_name,
        )
        return cls(context=context, state=StateTag.CREATED)

    # -- accessors -------------------------------------------------------

    @property
    def name(self) -> EnvironmentName:
        return self.context.name

    @property
    def instance_ip(self) -> Optional[IPAddress]:
        return self.context.instance_ip

    @property
    def provider_config(self) -> ProviderConfig:
        return self.context.provider_config

    @property
    def ssh_credentials(self) -> SSHCredentials:
        return self.context.ssh_credentials

    @property
    def data_dir(self) -> Path:
        return self.context.data_dir

    @property
    def build_dir(self) -> Path:
        return self.context.build_dir

    @property
    def tofu_build_dir(self) -> Path:
        return self.build_dir / "tofu" / self.provider_config.provider.value

    @property
    def ansible_build_dir(self) -> Path:
        return self.build_dir / "ansible"

    @property
    def compose_build_dir(self) -> Path:
        return self.build_dir / "docker-compose"

    @property
    def traces_dir(self) -> Path:
        return self.data_dir / "traces"

    def with_instance_ip(self, ip: Union[str, IPAddress]) -> "Environment":
        try:
            address = ipaddress.ip_address(ip)
        except ValueError as exc:
            raise ValidationError(f"Invalid instance IP address '{ip}'") from exc
        return replace(self, context=replace(self.context, instance_ip=address))

    # -- transitions -----------------------------------------------------

    def transition_to(self, target: StateTag) -> "Environment":
        if target.is_failed:
            raise ValidationError(f"Use fail_with() to enter '{target.value}'")
        self._check_predecessor(target)
        return Environment(context=self.context, state=target)

    def fail_with(self, target: StateTag, failure: FailureContext) -> "Environment":
        if not target.is_failed:
            raise ValidationError(f"'{target.value}' is not a failure state")
        self._check_predecessor(target)
        return Environment(context=self.context, state=target, failure=failure)

    def _check_predecessor(self, target: StateTag) -> None:
        allowed = TRANSITIONS[target]
        if self.state not in allowed:
            raise WrongStateError(
                f"transition to '{target.value}'",
                sorted(tag.value for tag in allowed),
                self.state.value,
            )

    def start_provisioning(self) -> "Environment":
        return self.transition_to(StateTag.PROVISIONING)

    def provisioned(self) -> "Environment":
        return self.transition_to(StateTag.PROVISIONED)

    def registered(self, ip: Union[str, IPAddress]) -> "Environment":
        """Adopt an existing instance: Created goes straight to Provisioned.

        The phase tables only reach Provisioned through Provisioning, so
        this path is checked here instead of in `TRANSITIONS`.
        """
        if self.state is not StateTag.CREATED:
            raise WrongStateError(
                f"register environment '{self.name}'", [StateTag.CREATED.value], self.state.value
            )
        return Environment(context=self.with_instance_ip(ip).context, state=StateTag.PROVISIONED)

    def provision_failed(self, failure: FailureContext) -> "Environment":
        return self.fail_with(StateTag.PROVISION_FAILED, failure)

    def start_configuring(self) -> "Environment":
        return self.transition_to(StateTag.CONFIGURING)

    def configured(self) -> "Environment":
        return self.transition_to(StateTag.CONFIGURED)

    def configure_failed(self, failure: FailureContext) -> "Environment":
        return self.fail_with(StateTag.CONFIGURE_FAILED, failure)

    def start_releasing(self) -> "Environment":
        return self.transition_to(StateTag.RELEASING)

    def released(self) -> "Environment":
        return self.transition_to(StateTag.RELEASED)

    def release_failed(self, failure: FailureContext) -> "Environment":
        return self.fail_with(StateTag.RELEASE_FAILED, failure)

    def running(self) -> "Environment":
        return self.transition_to(StateTag.RUNNING)

    def run_failed(self, failure: FailureContext) -> "Environment":
        return self.fail_with(StateTag.RUN_FAILED, failure)

    def start_destroying(self) -> "Environment":
        return self.transition_to(StateTag.DESTROYING)

    def destroyed(self) -> "Environment":
        return self.transition_to(StateTag.DESTROYED)

    def destroy_failed(self, failure: FailureContext) -> "Environment":
        return self.fail_with(StateTag.DESTROY_FAILED, failure)
