"""Error taxonomy shared by steps, handlers and the state store."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Sequence


class ErrorKind(str, Enum):
    """Classification persisted in failure contexts and reported to users."""

    IO = "Io"
    COMMAND_EXECUTION = "CommandExecution"
    VALIDATION = "Validation"
    CONFIGURATION = "Configuration"
    TIMEOUT = "Timeout"
    WRONG_STATE = "WrongState"


def summarize_output(text: str, max_lines: int = 10) -> str:
    """Keep the last `max_lines` non-empty lines of tool output."""
    lines = [line for line in (text or "").strip().splitlines() if line.strip()]
    if len(lines) <= max_lines:
        return "\n".join(lines)
    omitted = len(lines) - max_lines
    return "\n".join([f"... ({omitted} earlier lines omitted)", *lines[-max_lines:]])


class DeployerError(Exception):
    """Base class for every failure the deployer reports."""

    kind: ErrorKind = ErrorKind.CONFIGURATION
    help_text: str = (
        "Unexpected Failure - Troubleshooting:\n\n"
        "1. Re-run the command with --log-level DEBUG\n"
        "2. Inspect the environment state file under data/<env-name>/environment.json\n"
        "3. Report the issue with the full log output"
    )

    def help(self) -> str:
        return self.help_text


class FileSystemError(DeployerError):
    """Raised when reading or writing local files fails."""

    kind = ErrorKind.IO
    help_text = (
        "File System Operation Failed - Troubleshooting:\n\n"
        "1. Check permissions on the data and build directories\n"
        "2. Verify available disk space: df -h\n"
        "3. Make sure the path is not held open by another process\n"
        "4. Re-run the command once the problem is fixed"
    )

    def __init__(self, operation: str, path: Path | str, source: Optional[BaseException] = None) -> None:
        self.operation = operation
        self.path = Path(path)
        self.source = source
        detail = f": {source}" if source else ""
        super().__init__(f"Failed to {operation} {self.path}{detail}")


class CommandExecutionError(DeployerError):
    """Raised when an external tool exits non-zero or produces unusable output."""

    kind = ErrorKind.COMMAND_EXECUTION
    help_text = (
        "External Command Failed - Troubleshooting:\n\n"
        "1. Check that the required tools are installed (tofu, ansible-playbook, ssh)\n"
        "2. Verify the PATH environment variable includes the tool locations\n"
        "3. Review the captured error output above\n"
        "4. Try running the command manually from the working directory shown"
    )

    def __init__(
        self,
        command: Sequence[str],
        exit_code: Optional[int],
        stderr: str = "",
        *,
        message: Optional[str] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        self.command = list(command)
        self.exit_code = exit_code
        self.stderr = summarize_output(stderr)
        self.cwd = cwd
        if message is None:
            message = f"Command `{' '.join(self.command)}` failed with exit code {exit_code}"
            if self.stderr:
                message += f": {self.stderr}"
        super().__init__(message)


class ValidationError(DeployerError):
    """Raised when user-supplied input is invalid."""

    kind = ErrorKind.VALIDATION
    help_text = (
        "Invalid Input - Troubleshooting:\n\n"
        "1. Review the error message for the offending field\n"
        "2. Environment names use lowercase letters, digits and single dashes\n"
        "3. SSH key paths must be absolute\n"
        "4. Fix the environment configuration file and retry"
    )


class ConfigurationError(DeployerError):
    """Raised on internal inconsistencies or unusable configuration."""

    kind = ErrorKind.CONFIGURATION
    help_text = (
        "Configuration Problem - Troubleshooting:\n\n"
        "1. Check the deployer configuration file passed with --config\n"
        "2. Verify the templates directory contains the expected template sets\n"
        "3. Make sure every field required by the active provider is present"
    )


class OperationTimeoutError(DeployerError):
    """Raised when a bounded wait expires."""

    kind = ErrorKind.TIMEOUT
    help_text = (
        "Operation Timed Out - Troubleshooting:\n\n"
        "1. Verify the instance is running using your provider tools\n"
        "2. Check that the instance IP address is reachable from this machine\n"
        "3. Test SSH manually: ssh -i <key-path> <user>@<ip-address>\n"
        "4. Increase connectivity.max_attempts in the configuration for slow hosts"
    )

    def __init__(self, operation: str, *, attempts: Optional[int] = None, elapsed: Optional[float] = None) -> None:
        self.operation = operation
        self.attempts = attempts
        self.elapsed = elapsed
        parts = []
        if attempts is not None:
            parts.append(f"{attempts} attempts")
        if elapsed is not None:
            parts.append(f"{elapsed:.0f}s")
        suffix = f" after {', '.join(parts)}" if parts else ""
        super().__init__(f"Timed out waiting for {operation}{suffix}")


class WrongStateError(DeployerError):
    """Raised when an environment is not in a state the operation accepts."""

    kind = ErrorKind.WRONG_STATE
    help_text = (
        "Invalid State Transition - Troubleshooting:\n\n"
        "The environment is not in the expected state for this operation.\n\n"
        "1. Check the current state: stack-deployer show <env-name>\n"
        "2. Follow the lifecycle order: create, provision, configure, release, run\n"
        "3. Re-run the command that failed, or destroy and recreate the environment"
    )

    def __init__(self, operation: str, expected: Iterable[str], actual: str) -> None:
        self.operation = operation
        self.expected = tuple(expected)
        self.actual = actual
        expected_text = " or ".join(f"'{tag}'" for tag in self.expected)
        super().__init__(
            f"Cannot {operation}: expected state {expected_text}, but found '{actual}'"
        )
