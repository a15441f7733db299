"""SSH credential helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from ..errors import ValidationError

_USERNAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")


@dataclass(frozen=True)
class SSHCredentials:
    """Key pair and login used to reach provisioned instances.

    Key paths must be absolute: commands may be invoked from different
    working directories and the stored environment has to stay valid.
    """

    private_key_path: Path
    public_key_path: Path
    username: str
    port: int = 22

    def __post_init__(self) -> None:
        for label in ("private_key_path", "public_key_path"):
            value = getattr(self, label)
            if not isinstance(value, (str, Path)):
                raise ValidationError(f"SSH {label} must be a path, got {value!r}")
            object.__setattr__(self, label, Path(value))
        self.validate()

    def validate(self) -> None:
        for label, path in (
            ("private_key_path", self.private_key_path),
            ("public_key_path", self.public_key_path),
        ):
            if not path.is_absolute():
                raise ValidationError(
                    f"SSH {label} must be an absolute path, got '{path}'"
                )
        if not isinstance(self.username, str) or not _USERNAME_PATTERN.match(self.username):
            raise ValidationError(
                f"Invalid SSH username '{self.username}': must start with a letter or underscore "
                "and contain only lowercase letters, digits, underscores and dashes (max 32 chars)"
            )
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 1 <= self.port <= 65535:
            raise ValidationError(f"Invalid SSH port '{self.port}': must be between 1 and 65535")

    def read_public_key(self) -> str:
        return self.public_key_path.read_text(encoding="utf-8").strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "private_key_path": str(self.private_key_path),
            "public_key_path": str(self.public_key_path),
            "username": self.username,
            "port": self.port,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SSHCredentials":
        if not isinstance(payload, dict):
            raise ValidationError("SSH credentials must be an object")
        try:
            return cls(
                private_key_path=payload["private_key_path"],
                public_key_path=payload["public_key_path"],
                username=payload["username"],
                port=payload.get("port", 22),
            )
        except KeyError as exc:
            raise ValidationError(f"Missing SSH credentials field: {exc.args[0]}") from exc
