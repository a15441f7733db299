"""Provider configuration variants.

Each supported provider has its own dataclass holding only the fields that
provider needs. The set is closed: serialized documents carry a
``"provider"`` discriminator and unknown values are rejected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Union

from ..errors import ValidationError


class Provider(str, Enum):
    LXD = "lxd"
    HETZNER = "hetzner"


_PROFILE_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{0,62}$")


@dataclass(frozen=True)
class LxdConfig:
    """Local LXD virtual machines, addressed through an LXD profile."""

    profile_name: str

    provider = Provider.LXD

    def __post_init__(self) -> None:
        if not isinstance(self.profile_name, str) or not _PROFILE_PATTERN.match(self.profile_name):
            raise ValidationError(
                f"Invalid LXD profile name '{self.profile_name}': use lowercase letters, digits and dashes"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {"provider": self.provider.value, "profile_name": self.profile_name}


@dataclass(frozen=True)
class HetznerConfig:
    """Hetzner Cloud servers."""

    api_token: str = field(repr=False)
    server_type: str
    location: str
    image: str = "ubuntu-24.04"

    provider = Provider.HETZNER

    def __post_init__(self) -> None:
        for label in ("api_token", "server_type", "location", "image"):
            value = getattr(self, label)
            if not isinstance(value, str) or not value:
                raise ValidationError(f"Hetzner {label} must be a non-empty string")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "api_token": self.api_token,
            "server_type": self.server_type,
            "location": self.location,
            "image": self.image,
        }


ProviderConfig = Union[LxdConfig, HetznerConfig]


def provider_config_from_dict(payload: Dict[str, Any]) -> ProviderConfig:
    if not isinstance(payload, dict):
        raise ValidationError("Provider configuration must be an object")
    raw = payload.get("provider")
    try:
        provider = Provider(raw)
    except ValueError:
        supported = ", ".join(p.value for p in Provider)
        raise ValidationError(f"Unknown provider '{raw}' (supported: {supported})") from None

    try:
        if provider is Provider.LXD:
            return LxdConfig(profile_name=payload["profile_name"])
        return HetznerConfig(
            api_token=payload["api_token"],
            server_type=payload["server_type"],
            location=payload["location"],
            image=payload.get("image", "ubuntu-24.04"),
        )
    except KeyError as exc:
        raise ValidationError(
            f"Missing field '{exc.args[0]}' for provider '{provider.value}'"
        ) from exc


def redacted(config: ProviderConfig) -> Dict[str, Any]:
    """Serializable view of `config` without secrets."""
    data = config.to_dict()
    if "api_token" in data:
        data["api_token"] = "***"
    return data
