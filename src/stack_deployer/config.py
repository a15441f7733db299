"""Configuration loading utilities for stack-deployer."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .paths import BUILD_DIR, CONFIG_DIR, DATA_DIR, TEMPLATES_DIR

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = CONFIG_DIR / "default_config.json"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class PathsConfig:
    """Where state, build output and templates live."""

    data_root: str = str(DATA_DIR)
    build_root: str = str(BUILD_DIR)
    templates_dir: str = str(TEMPLATES_DIR)


@dataclass
class ToolsConfig:
    """External tool binaries."""

    tofu_binary: str = "tofu"
    ansible_binary: str = "ansible-playbook"
    command_timeout: Optional[float] = None  # seconds, None waits forever


@dataclass
class ConnectivityConfig:
    """SSH reachability polling after provisioning."""

    max_attempts: int = 30
    retry_interval: float = 2.0   # seconds between attempts
    connect_timeout: float = 5.0  # per-attempt SSH timeout


@dataclass
class ConfigureConfig:
    firewall: str = "auto"  # "auto" | "always" | "never"


@dataclass
class ReleaseConfig:
    """Application stack rendered by the release command."""

    image: str = "nginx:stable"
    http_port: int = 80
    remote_app_dir: str = "/opt/stack"


@dataclass
class ProvidersConfig:
    hetzner_api_token: Optional[str] = field(default=None, repr=False)


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    """Top-level configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    connectivity: ConnectivityConfig = field(default_factory=ConnectivityConfig)
    configure: ConfigureConfig = field(default_factory=ConfigureConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    providers: ProvidersConfig = field(default_factory=ProvidersConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        if not isinstance(payload, dict):
            raise ConfigurationError("Configuration root must be a JSON object")

        def section(name: str, section_cls):
            data = payload.get(name, {}) or {}
            if not isinstance(data, dict):
                raise ConfigurationError(f"Configuration section '{name}' must be an object")
            # Keys starting with "_" are comments
            data = {k: v for k, v in data.items() if not k.startswith("_")}
            defaults = section_cls().__dict__
            unknown = sorted(set(data) - set(defaults))
            if unknown:
                raise ConfigurationError(
                    f"Unknown key(s) in configuration section '{name}': {', '.join(unknown)}"
                )
            return section_cls(**{**defaults, **data})

        config = cls(
            paths=section("paths", PathsConfig),
            tools=section("tools", ToolsConfig),
            connectivity=section("connectivity", ConnectivityConfig),
            configure=section("configure", ConfigureConfig),
            release=section("release", ReleaseConfig),
            providers=section("providers", ProvidersConfig),
            logging=section("logging", LoggingConfig),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.configure.firewall not in ("auto", "always", "never"):
            raise ConfigurationError(
                f"configure.firewall must be 'auto', 'always' or 'never', got '{self.configure.firewall}'"
            )
        if self.connectivity.max_attempts < 1:
            raise ConfigurationError("connectivity.max_attempts must be at least 1")
        if self.connectivity.retry_interval < 0:
            raise ConfigurationError("connectivity.retry_interval cannot be negative")
        if self.logging.level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level '{self.logging.level}'")
        if not 1 <= int(self.release.http_port) <= 65535:
            raise ConfigurationError(f"release.http_port out of range: {self.release.http_port}")


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in configuration file {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration file {path}: {exc}") from exc


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path`, the default location, or defaults.

    Environment variables (higher priority than config file):
    - STACK_DEPLOYER_DATA_ROOT: directory holding environment state
    - STACK_DEPLOYER_BUILD_ROOT: directory holding rendered build output
    - STACK_DEPLOYER_TEMPLATES_DIR: template sets to render
    - STACK_DEPLOYER_TOFU_BINARY: OpenTofu executable
    - STACK_DEPLOYER_ANSIBLE_BINARY: ansible-playbook executable
    - STACK_DEPLOYER_LOG_LEVEL: log level
    - STACK_DEPLOYER_HETZNER_API_TOKEN: default Hetzner API token for `create`
    """

    if path:
        candidate = Path(path)
        if not candidate.is_file():
            raise ConfigurationError(f"Configuration file not found: {candidate}")
        config = AppConfig.from_dict(_read_json(candidate))
    elif _DEFAULT_CONFIG_PATH.is_file():
        config = AppConfig.from_dict(_read_json(_DEFAULT_CONFIG_PATH))
    else:
        config = AppConfig()

    env_data_root = os.getenv("STACK_DEPLOYER_DATA_ROOT")
    if env_data_root:
        config.paths.data_root = env_data_root

    env_build_root = os.getenv("STACK_DEPLOYER_BUILD_ROOT")
    if env_build_root:
        config.paths.build_root = env_build_root

    env_templates = os.getenv("STACK_DEPLOYER_TEMPLATES_DIR")
    if env_templates:
        config.paths.templates_dir = env_templates

    env_tofu = os.getenv("STACK_DEPLOYER_TOFU_BINARY")
    if env_tofu:
        config.tools.tofu_binary = env_tofu

    env_ansible = os.getenv("STACK_DEPLOYER_ANSIBLE_BINARY")
    if env_ansible:
        config.tools.ansible_binary = env_ansible

    env_level = os.getenv("STACK_DEPLOYER_LOG_LEVEL")
    if env_level:
        config.logging.level = env_level

    env_token = os.getenv("STACK_DEPLOYER_HETZNER_API_TOKEN")
    if env_token:
        config.providers.hetzner_api_token = env_token

    config.validate()
    return config
