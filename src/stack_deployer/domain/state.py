"""Lifecycle state tags and failure records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import ErrorKind, ValidationError


class StateTag(str, Enum):
    CREATED = "Created"
    PROVISIONING = "Provisioning"
    PROVISIONED = "Provisioned"
    PROVISION_FAILED = "ProvisionFailed"
    CONFIGURING = "Configuring"
    CONFIGURED = "Configured"
    CONFIGURE_FAILED = "ConfigureFailed"
    RELEASING = "Releasing"
    RELEASED = "Released"
    RELEASE_FAILED = "ReleaseFailed"
    RUNNING = "Running"
    RUN_FAILED = "RunFailed"
    DESTROYING = "Destroying"
    DESTROYED = "Destroyed"
    DESTROY_FAILED = "DestroyFailed"

    @property
    def is_failed(self) -> bool:
        return self in FAILED_TAGS


FAILED_TAGS = frozenset(
    {
        StateTag.PROVISION_FAILED,
        StateTag.CONFIGURE_FAILED,
        StateTag.RELEASE_FAILED,
        StateTag.RUN_FAILED,
        StateTag.DESTROY_FAILED,
    }
)


def _parse_timestamp(value: Any, label: str) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid timestamp for {label}: {value!r}") from exc


@dataclass(frozen=True)
class FailureContext:
    """Which step failed, how, and when."""

    failed_step: str
    error_kind: ErrorKind
    error_summary: str
    occurred_at: datetime
    execution_started_at: Optional[datetime] = None
    trace_file_path: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "failed_step": self.failed_step,
            "error_kind": self.error_kind.value,
            "error_summary": self.error_summary,
            "occurred_at": self.occurred_at.isoformat(),
            "execution_started_at": (
                self.execution_started_at.isoformat() if self.execution_started_at else None
            ),
            "trace_file_path": str(self.trace_file_path) if self.trace_file_path else None,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FailureContext":
        try:
            kind = ErrorKind(payload["error_kind"])
        except KeyError as exc:
            raise ValidationError("Failure context is missing 'error_kind'") from exc
        except ValueError as exc:
            raise ValidationError(f"Unknown error kind {payload['error_kind']!r}") from exc
        try:
            failed_step = payload["failed_step"]
            summary = payload["error_summary"]
            occurred_at = payload["occurred_at"]
        except KeyError as exc:
            raise ValidationError(f"Failure context is missing '{exc.args[0]}'") from exc
        if not isinstance(failed_step, str) or not isinstance(summary, str):
            raise ValidationError("Failure context 'failed_step' and 'error_summary' must be strings")

        started = payload.get("execution_started_at")
        trace = payload.get("trace_file_path")
        if trace is not None and not isinstance(trace, str):
            raise ValidationError(f"Invalid trace_file_path {trace!r}")
        return cls(
            failed_step=failed_step,
            error_kind=kind,
            error_summary=summary,
            occurred_at=_parse_timestamp(occurred_at, "occurred_at"),
            execution_started_at=(
                _parse_timestamp(started, "execution_started_at") if started else None
            ),
            trace_file_path=Path(trace) if trace else None,
        )
