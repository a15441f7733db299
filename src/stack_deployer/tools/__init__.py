"""Wrappers around the external tools driven by the deployer."""

from .ansible import AnsibleClient
from .executor import CommandExecutor, CommandResult
from .factory import ToolFactory
from .templates import TemplateRenderer
from .tofu import InstanceInfo, OpenTofuClient, parse_instance_info

__all__ = [
    "AnsibleClient",
    "CommandExecutor",
    "CommandResult",
    "InstanceInfo",
    "OpenTofuClient",
    "TemplateRenderer",
    "ToolFactory",
    "parse_instance_info",
]
