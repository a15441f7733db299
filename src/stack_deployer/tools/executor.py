"""Blocking subprocess execution for external tools."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..errors import CommandExecutionError, OperationTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    command: list[str]
    exit_code: int
    stdout: str
    stderr: str


class CommandExecutor:
    """Runs a program to completion and captures its output as text."""

    def __init__(self, env: Optional[Mapping[str, str]] = None) -> None:
        self._env = dict(env) if env is not None else None

    def run(
        self,
        program: str,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        command = [program, *args]
        logger.debug("Running %s (cwd=%s)", " ".join(command), cwd)
        try:
            process = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout,
                env=self._env,
            )
        except FileNotFoundError as exc:
            raise CommandExecutionError(
                command,
                None,
                message=f"Executable '{program}' not found: {exc.strerror or exc}",
                cwd=cwd,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise OperationTimeoutError(f"`{' '.join(command)}`", elapsed=timeout) from exc
        except OSError as exc:
            raise CommandExecutionError(
                command, None, message=f"Failed to start '{program}': {exc}", cwd=cwd
            ) from exc

        if process.returncode != 0:
            raise CommandExecutionError(command, process.returncode, process.stderr or process.stdout, cwd=cwd)
        return CommandResult(
            command=command,
            exit_code=process.returncode,
            stdout=process.stdout,
            stderr=process.stderr,
        )
