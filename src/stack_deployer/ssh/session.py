"""SSH session management built on Paramiko."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Callable, Optional

import paramiko

from .credentials import SSHCredentials


class SSHConnectionError(RuntimeError):
    """Raised when an SSH connection cannot be established."""

    pass


@dataclass
class SSHCommandResult:
    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class SSHSession:
    """Key-authenticated wrapper around paramiko.SSHClient for one host."""

    def __init__(
        self,
        host: str,
        credentials: SSHCredentials,
        *,
        timeout: float = 5.0,
        client_factory: Callable[[], paramiko.SSHClient] | None = None,
    ) -> None:
        self.host = host
        self.credentials = credentials
        self.timeout = timeout
        self._client_factory = client_factory or paramiko.SSHClient
        self._client: Optional[paramiko.SSHClient] = None

    def __enter__(self) -> "SSHSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    def connect(self) -> None:
        if self._client:
            return
        client = self._client_factory()
        # Fresh instances present unknown host keys.
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=self.host,
                port=self.credentials.port,
                username=self.credentials.username,
                key_filename=str(self.credentials.private_key_path),
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
                look_for_keys=False,
                allow_agent=False,
            )
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise SSHConnectionError(str(exc)) from exc
        self._client = client

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def run(self, command: str, *, timeout: Optional[float] = None) -> SSHCommandResult:
        """Execute `command` and wait for it to finish."""
        if not self._client:
            self.connect()
        assert self._client is not None

        timeout = timeout if timeout is not None else self.timeout
        _, stdout, stderr = self._client.exec_command(command, timeout=timeout)
        try:
            exit_status = stdout.channel.recv_exit_status()
            stdout_text = stdout.read().decode("utf-8", errors="replace")
            stderr_text = stderr.read().decode("utf-8", errors="replace")
        except socket.timeout:
            stdout.channel.close()
            return SSHCommandResult(
                command=command,
                stdout="",
                stderr=f"TIMEOUT: Command did not complete within {timeout} seconds.",
                exit_status=-1,
            )

        return SSHCommandResult(
            command=command,
            stdout=stdout_text.strip(),
            stderr=stderr_text.strip(),
            exit_status=exit_status,
        )
