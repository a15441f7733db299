"""OpenTofu command wrapper."""

from __future__ import annotations

import ipaddress
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import CommandExecutionError
from .executor import CommandExecutor, CommandResult

logger = logging.getLogger(__name__)

VAR_FILE = "variables.tfvars"


@dataclass(frozen=True)
class InstanceInfo:
    """Facts reported by the `instance_info` output of the tofu configuration."""

    name: str
    image: str
    status: str
    ip_address: ipaddress.IPv4Address | ipaddress.IPv6Address


class OpenTofuClient:
    """Runs `tofu` subcommands inside one working directory."""

    def __init__(
        self,
        working_dir: Path,
        executor: Optional[CommandExecutor] = None,
        binary: str = "tofu",
        timeout: Optional[float] = None,
    ) -> None:
        self.working_dir = Path(working_dir)
        self.executor = executor or CommandExecutor()
        self.binary = binary
        self.timeout = timeout

    def _run(self, *args: str) -> CommandResult:
        logger.info("Running %s %s in %s", self.binary, " ".join(args), self.working_dir)
        return self.executor.run(self.binary, list(args), cwd=self.working_dir, timeout=self.timeout)

    def _var_file_args(self) -> list[str]:
        if (self.working_dir / VAR_FILE).is_file():
            return [f"-var-file={VAR_FILE}"]
        return []

    def init(self) -> str:
        return self._run("init", "-input=false").stdout

    def validate(self) -> str:
        return self._run("validate").stdout

    def plan(self) -> str:
        return self._run("plan", "-input=false", *self._var_file_args()).stdout

    def apply(self, auto_approve: bool = True) -> str:
        args = ["apply", "-input=false", *self._var_file_args()]
        if auto_approve:
            args.append("-auto-approve")
        return self._run(*args).stdout

    def destroy(self, auto_approve: bool = True) -> str:
        args = ["destroy", "-input=false", *self._var_file_args()]
        if auto_approve:
            args.append("-auto-approve")
        return self._run(*args).stdout

    def read_outputs(self) -> Dict[str, Any]:
        """Return `tofu output -json` flattened to ``{name: value}``."""
        result = self._run("output", "-json")
        try:
            raw = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as exc:
            raise self._parse_error(f"output is not valid JSON: {exc.msg}") from exc
        if not isinstance(raw, dict):
            raise self._parse_error("output JSON is not an object")
        outputs: Dict[str, Any] = {}
        for key, entry in raw.items():
            outputs[key] = entry.get("value") if isinstance(entry, dict) else entry
        return outputs

    def instance_info(self) -> InstanceInfo:
        return parse_instance_info(self.read_outputs(), command=[self.binary, "output", "-json"])

    def _parse_error(self, reason: str) -> CommandExecutionError:
        return CommandExecutionError(
            [self.binary, "output", "-json"],
            0,
            message=f"Unusable OpenTofu output: {reason}",
            cwd=self.working_dir,
        )


def parse_instance_info(outputs: Dict[str, Any], command: Optional[list[str]] = None) -> InstanceInfo:
    command = command or ["tofu", "output", "-json"]

    def fail(reason: str) -> CommandExecutionError:
        return CommandExecutionError(command, 0, message=f"Unusable OpenTofu output: {reason}")

    info = outputs.get("instance_info")
    if not isinstance(info, dict):
        raise fail("instance_info section not found in outputs")

    fields = {}
    for key in ("image", "ip_address", "name", "status"):
        value = info.get(key)
        if not isinstance(value, str):
            raise fail(f"{key} field missing or not a string")
        fields[key] = value
    try:
        address = ipaddress.ip_address(fields["ip_address"])
    except ValueError as exc:
        raise fail(f"ip_address field is not a valid IP address: {fields['ip_address']}") from exc

    return InstanceInfo(
        name=fields["name"],
        image=fields["image"],
        status=fields["status"],
        ip_address=address,
    )
