"""SSH utilities for stack-deployer."""

from .credentials import SSHCredentials
from .session import SSHCommandResult, SSHConnectionError, SSHSession
from .probe import ReachabilityProber

__all__ = [
    "SSHCredentials",
    "SSHCommandResult",
    "SSHConnectionError",
    "SSHSession",
    "ReachabilityProber",
]
