"""Validated names used to identify environments and their instances."""

from __future__ import annotations

import re

from ..errors import ValidationError

INSTANCE_NAME_PREFIX = "stack-vm"
MAX_INSTANCE_NAME_LENGTH = 63

_ALLOWED_CHARS = re.compile(r"^[a-z0-9-]+$")


class EnvironmentName(str):
    """Environment identifier: lowercase letters, digits and single dashes.

    Examples of valid names: ``dev``, ``staging2``, ``e2e-config``.
    The name must not start with a digit or dash, must not end with a dash
    and must not contain consecutive dashes.
    """

    def __new__(cls, value: str) -> "EnvironmentName":
        if isinstance(value, EnvironmentName):
            return value
        cls.validate(value)
        return super().__new__(cls, value)

    @staticmethod
    def validate(value: str) -> None:
        if not isinstance(value, str) or not value:
            raise ValidationError("Environment name cannot be empty")
        if not _ALLOWED_CHARS.match(value):
            raise ValidationError(
                f"Invalid environment name '{value}': only lowercase letters, digits and dashes are allowed"
            )
        if value[0].isdigit():
            raise ValidationError(f"Invalid environment name '{value}': must not start with a digit")
        if value.startswith("-") or value.endswith("-"):
            raise ValidationError(f"Invalid environment name '{value}': must not start or end with a dash")
        if "--" in value:
            raise ValidationError(f"Invalid environment name '{value}': must not contain consecutive dashes")


class InstanceName(str):
    """Name given to the provisioned compute resource."""

    def __new__(cls, value: str) -> "InstanceName":
        if isinstance(value, InstanceName):
            return value
        cls.validate(value)
        return super().__new__(cls, value)

    @staticmethod
    def validate(value: str) -> None:
        if not isinstance(value, str) or not value:
            raise ValidationError("Instance name cannot be empty")
        if len(value) > MAX_INSTANCE_NAME_LENGTH:
            raise ValidationError(
                f"Instance name must be {MAX_INSTANCE_NAME_LENGTH} characters or less, got {len(value)} characters"
            )
        if not re.match(r"^[A-Za-z0-9-]+$", value):
            raise ValidationError("Instance name must contain only ASCII letters, numbers, and dashes")
        if value[0].isdigit() or value[0] == "-":
            raise ValidationError("Instance name must not start with a digit or dash")
        if value.endswith("-"):
            raise ValidationError("Instance name must not end with a dash")

    @classmethod
    def for_environment(cls, name: EnvironmentName) -> "InstanceName":
        return cls(f"{INSTANCE_NAME_PREFIX}-{name}")
