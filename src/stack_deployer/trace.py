"""Plain-text trace files written when a command fails."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .domain import Environment
from .errors import DeployerError

logger = logging.getLogger(__name__)


def _cause_chain(error: BaseException) -> List[str]:
    lines = []
    seen = set()
    current: Optional[BaseException] = error
    depth = 0
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        lines.append(f"{'  ' * depth}{type(current).__name__}: {current}")
        current = current.__cause__ or current.__context__
        depth += 1
    return lines


def write_trace(
    environment: Environment,
    command: str,
    failed_step: str,
    error: DeployerError,
    occurred_at: datetime,
    started_at: Optional[datetime] = None,
) -> Optional[Path]:
    """Write a trace file under the environment's traces dir.

    Returns the file path, or None when the file could not be written.
    """
    stamp = occurred_at.strftime("%Y%m%d-%H%M%S")
    path = environment.traces_dir / f"{stamp}-{command}.log"
    lines = [
        f"Command:      {command}",
        f"Environment:  {environment.name}",
        f"Failed step:  {failed_step}",
        f"Error kind:   {error.kind.value}",
        f"Occurred at:  {occurred_at.isoformat()}",
    ]
    if started_at is not None:
        lines.append(f"Started at:   {started_at.isoformat()}")
    lines += ["", "Summary:", str(error), "", "Cause chain:"]
    lines += _cause_chain(error)
    lines += ["", error.help(), ""]

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines), encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not write trace file %s: %s", path, exc)
        return None
    logger.info("[%s] trace written to %s", environment.name, path)
    return path
