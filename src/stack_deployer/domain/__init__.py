"""Domain model: environments, their states and provider configuration."""

from .environment import Environment, EnvironmentContext, IPAddress, TRANSITIONS, utc_now
from .names import EnvironmentName, InstanceName
from .provider import (
    HetznerConfig,
    LxdConfig,
    Provider,
    ProviderConfig,
    provider_config_from_dict,
    redacted,
)
from .state import FAILED_TAGS, FailureContext, StateTag

__all__ = [
    "Environment",
    "EnvironmentContext",
    "EnvironmentName",
    "FAILED_TAGS",
    "FailureContext",
    "HetznerConfig",
    "IPAddress",
    "InstanceName",
    "LxdConfig",
    "Provider",
    "ProviderConfig",
    "StateTag",
    "TRANSITIONS",
    "provider_config_from_dict",
    "redacted",
    "utc_now",
]
