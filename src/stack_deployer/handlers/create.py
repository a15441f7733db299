"""Create command handler."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..domain import Environment, EnvironmentName, provider_config_from_dict, utc_now
from ..errors import DeployerError, ValidationError
from ..output import NullOutput, UserOutput
from ..persistence import EnvironmentStore
from ..ssh.credentials import SSHCredentials
from .base import Clock
from .errors import CreateCommandError

logger = logging.getLogger(__name__)


class CreateCommandHandler:
    """Validates an environment description and persists it as Created.

    Expected input::

        {
          "environment": {"name": "dev"},
          "ssh_credentials": {"private_key_path": "/abs/id_ed25519",
                              "public_key_path": "/abs/id_ed25519.pub",
                              "username": "deployer", "port": 22},
          "provider": {"provider": "lxd", "profile_name": "stack-dev"}
        }
    """

    def __init__(
        self,
        store: EnvironmentStore,
        build_root: Path,
        clock: Clock = utc_now,
        *,
        hetzner_api_token: Optional[str] = None,
    ) -> None:
        self.store = store
        self.build_root = Path(build_root)
        self.clock = clock
        self.hetzner_api_token = hetzner_api_token

    def execute(self, environment_config: Dict[str, Any], output: Optional[UserOutput] = None) -> Environment:
        output = output or NullOutput()
        try:
            environment = self._build(environment_config)
        except DeployerError as exc:
            raise CreateCommandError(f"Invalid environment configuration: {exc}", cause=exc) from exc

        if self.store.exists(environment.name):
            error = ValidationError(f"Environment '{environment.name}' already exists")
            raise CreateCommandError(str(error), cause=error)

        try:
            self.store.persist(environment)
        except DeployerError as exc:
            raise CreateCommandError(f"Cannot create '{environment.name}': {exc}", cause=exc) from exc

        logger.info("[%s] created with provider %s", environment.name, environment.provider_config.provider.value)
        output.success(f"Environment '{environment.name}' created")
        return environment

    def _build(self, config: Dict[str, Any]) -> Environment:
        if not isinstance(config, dict):
            raise ValidationError("Environment configuration must be a JSON object")
        for section in ("environment", "ssh_credentials", "provider"):
            if not isinstance(config.get(section), dict):
                raise ValidationError(f"Missing or invalid '{section}' section")

        name = EnvironmentName(config["environment"].get("name", ""))
        credentials = SSHCredentials.from_dict(config["ssh_credentials"])
        for path in (credentials.private_key_path, credentials.public_key_path):
            if not path.is_file():
                raise ValidationError(f"SSH key file not found: {path}")

        provider_payload = dict(config["provider"])
        if provider_payload.get("provider") == "hetzner" and not provider_payload.get("api_token"):
            if self.hetzner_api_token:
                provider_payload["api_token"] = self.hetzner_api_token
        provider_config = provider_config_from_dict(provider_payload)

        return Environment.create(
            name,
            provider_config,
            credentials,
            data_root=self.store.data_root,
            build_root=self.build_root,
            created_at=self.clock(),
        )
