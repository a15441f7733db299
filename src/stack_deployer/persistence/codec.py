"""JSON document shape of a persisted environment.

    {"<StateTag>": {"context": {...}, "state": {...}}}

Failed tags store their failure record as ``"state": {"context": {...}}``;
every other tag stores an empty ``"state"`` object.
"""

from __future__ import annotations

import ipaddress
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from ..domain import (
    Environment,
    EnvironmentContext,
    EnvironmentName,
    FailureContext,
    InstanceName,
    StateTag,
    provider_config_from_dict,
)
from ..errors import ValidationError
from ..ssh.credentials import SSHCredentials


def _context_to_dict(context: EnvironmentContext) -> Dict[str, Any]:
    return {
        "name": str(context.name),
        "instance_name": str(context.instance_name),
        "provider_config": context.provider_config.to_dict(),
        "ssh_credentials": context.ssh_credentials.to_dict(),
        "created_at": context.created_at.isoformat(),
        "instance_ip": str(context.instance_ip) if context.instance_ip else None,
        "data_dir": str(context.data_dir),
        "build_dir": str(context.build_dir),
    }


_STRING_FIELDS = ("name", "instance_name", "created_at", "data_dir", "build_dir")


def _context_from_dict(payload: Dict[str, Any]) -> EnvironmentContext:
    try:
        for key in _STRING_FIELDS:
            if not isinstance(payload[key], str):
                raise ValidationError(f"Environment context field '{key}' must be a string")
        ip = payload.get("instance_ip")
        if ip is not None and not isinstance(ip, str):
            raise ValidationError(f"Invalid instance_ip {ip!r}")
        created_at = payload["created_at"]
        try:
            created = datetime.fromisoformat(created_at)
        except ValueError as exc:
            raise ValidationError(f"Invalid created_at timestamp {created_at!r}") from exc
        try:
            address = ipaddress.ip_address(ip) if ip else None
        except ValueError as exc:
            raise ValidationError(f"Invalid instance_ip {ip!r}") from exc
        return EnvironmentContext(
            name=EnvironmentName(payload["name"]),
            instance_name=InstanceName(payload["instance_name"]),
            provider_config=provider_config_from_dict(payload["provider_config"]),
            ssh_credentials=SSHCredentials.from_dict(payload["ssh_credentials"]),
            created_at=created,
            data_dir=Path(payload["data_dir"]),
            build_dir=Path(payload["build_dir"]),
            instance_ip=address,
        )
    except KeyError as exc:
        raise ValidationError(f"Environment context is missing '{exc.args[0]}'") from exc


def environment_to_document(environment: Environment) -> Dict[str, Any]:
    state: Dict[str, Any] = {}
    if environment.failure is not None:
        state = {"context": environment.failure.to_dict()}
    return {
        environment.state.value: {
            "context": _context_to_dict(environment.context),
            "state": state,
        }
    }


def environment_from_document(document: Any) -> Environment:
    """Rebuild an Environment; raises `ValidationError` on any malformed input."""
    if not isinstance(document, dict) or len(document) != 1:
        raise ValidationError("State document must contain exactly one state tag")
    (raw_tag, body), = document.items()
    try:
        tag = StateTag(raw_tag)
    except ValueError:
        raise ValidationError(f"Unknown state tag '{raw_tag}'") from None
    if not isinstance(body, dict) or not isinstance(body.get("context"), dict):
        raise ValidationError(f"State '{raw_tag}' has no context object")

    context = _context_from_dict(body["context"])
    state_payload = body.get("state") or {}
    if not isinstance(state_payload, dict):
        raise ValidationError(f"State '{raw_tag}' payload must be an object")

    failure = None
    if tag.is_failed:
        failure_payload = state_payload.get("context")
        if not isinstance(failure_payload, dict):
            raise ValidationError(f"State '{raw_tag}' is missing its failure context")
        failure = FailureContext.from_dict(failure_payload)
    return Environment(context=context, state=tag, failure=failure)
