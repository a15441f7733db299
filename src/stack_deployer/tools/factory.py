"""Builds the external-tool clients a command needs."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..ssh.probe import ReachabilityProber
from .ansible import AnsibleClient
from .executor import CommandExecutor
from .templates import TemplateRenderer
from .tofu import OpenTofuClient

if TYPE_CHECKING:
    from ..config import AppConfig


class ToolFactory:
    """Creates tool clients bound to per-environment working directories.

    Tests replace individual clients by subclassing and overriding the
    factory methods.
    """

    def __init__(
        self,
        templates_dir: Path,
        *,
        tofu_binary: str = "tofu",
        ansible_binary: str = "ansible-playbook",
        command_timeout: Optional[float] = None,
        executor: Optional[CommandExecutor] = None,
        prober: Optional[ReachabilityProber] = None,
    ) -> None:
        self.templates_dir = Path(templates_dir)
        self.tofu_binary = tofu_binary
        self.ansible_binary = ansible_binary
        self.command_timeout = command_timeout
        self.executor = executor or CommandExecutor()
        self._prober = prober or ReachabilityProber()
        self._renderer = TemplateRenderer(self.templates_dir)

    @classmethod
    def from_config(cls, config: "AppConfig") -> "ToolFactory":
        connectivity = config.connectivity
        return cls(
            templates_dir=Path(config.paths.templates_dir),
            tofu_binary=config.tools.tofu_binary,
            ansible_binary=config.tools.ansible_binary,
            command_timeout=config.tools.command_timeout,
            prober=ReachabilityProber(
                max_attempts=connectivity.max_attempts,
                retry_interval=connectivity.retry_interval,
                connect_timeout=connectivity.connect_timeout,
            ),
        )

    def tofu(self, working_dir: Path) -> OpenTofuClient:
        return OpenTofuClient(
            working_dir, self.executor, binary=self.tofu_binary, timeout=self.command_timeout
        )

    def ansible(self, working_dir: Path) -> AnsibleClient:
        return AnsibleClient(
            working_dir, self.executor, binary=self.ansible_binary, timeout=self.command_timeout
        )

    def renderer(self) -> TemplateRenderer:
        return self._renderer

    def prober(self) -> ReachabilityProber:
        return self._prober
