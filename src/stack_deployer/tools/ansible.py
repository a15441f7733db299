"""ansible-playbook wrapper."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .executor import CommandExecutor

logger = logging.getLogger(__name__)


class AnsibleClient:
    """Runs one playbook per call from a rendered ansible working directory."""

    def __init__(
        self,
        working_dir: Path,
        executor: Optional[CommandExecutor] = None,
        binary: str = "ansible-playbook",
        timeout: Optional[float] = None,
    ) -> None:
        self.working_dir = Path(working_dir)
        self.executor = executor or CommandExecutor()
        self.binary = binary
        self.timeout = timeout

    def run_playbook(
        self,
        name: str,
        inventory: str = "inventory.yml",
        extra_vars: Optional[Dict[str, Any]] = None,
    ) -> str:
        playbook = name if name.endswith((".yml", ".yaml")) else f"{name}.yml"
        args = ["-v", "-i", inventory]
        if extra_vars:
            args += ["--extra-vars", json.dumps(extra_vars, sort_keys=True)]
        args.append(playbook)
        logger.info("Running playbook %s in %s", playbook, self.working_dir)
        result = self.executor.run(self.binary, args, cwd=self.working_dir, timeout=self.timeout)
        return result.stdout
