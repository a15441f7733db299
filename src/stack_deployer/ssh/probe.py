"""Remote reachability probing."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ..errors import OperationTimeoutError
from .credentials import SSHCredentials
from .session import SSHConnectionError, SSHSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str, SSHCredentials, float], SSHSession]


def _default_session_factory(host: str, credentials: SSHCredentials, timeout: float) -> SSHSession:
    return SSHSession(host, credentials, timeout=timeout)


class ReachabilityProber:
    """Waits until a freshly provisioned host accepts SSH logins.

    Each attempt opens a new session and runs a trivial command. Attempts
    are spaced by `retry_interval` seconds; after `max_attempts` failed
    attempts an `OperationTimeoutError` is raised.
    """

    def __init__(
        self,
        max_attempts: int = 30,
        retry_interval: float = 2.0,
        connect_timeout: float = 5.0,
        *,
        log_every: int = 5,
        session_factory: Optional[SessionFactory] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_attempts = max_attempts
        self.retry_interval = retry_interval
        self.connect_timeout = connect_timeout
        self.log_every = max(1, log_every)
        self._session_factory = session_factory or _default_session_factory
        self._sleep = sleep

    @property
    def total_timeout(self) -> float:
        return self.max_attempts * self.retry_interval

    def wait_until_reachable(self, ip: str, credentials: SSHCredentials) -> None:
        logger.info("Waiting for SSH connectivity on %s:%s", ip, credentials.port)
        started = time.monotonic()
        for attempt in range(1, self.max_attempts + 1):
            if self._attempt(ip, credentials):
                logger.info("SSH connectivity established with %s after %d attempt(s)", ip, attempt)
                return
            if attempt % self.log_every == 0:
                logger.info(
                    "Still waiting for SSH connectivity on %s (%d/%d)", ip, attempt, self.max_attempts
                )
            if attempt < self.max_attempts:
                self._sleep(self.retry_interval)

        raise OperationTimeoutError(
            f"SSH connectivity to {ip}:{credentials.port}",
            attempts=self.max_attempts,
            elapsed=time.monotonic() - started,
        )

    def _attempt(self, ip: str, credentials: SSHCredentials) -> bool:
        session = self._session_factory(ip, credentials, self.connect_timeout)
        try:
            with session:
                result = session.run("echo ok")
            return result.ok
        except SSHConnectionError as exc:
            logger.debug("SSH attempt on %s failed: %s", ip, exc)
            return False
        except OSError as exc:
            logger.debug("SSH attempt on %s failed: %s", ip, exc)
            return False
