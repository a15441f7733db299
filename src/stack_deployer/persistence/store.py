"""Durable per-environment state files."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List

from ..domain import Environment, EnvironmentName
from ..errors import ConfigurationError, FileSystemError, ValidationError
from .codec import environment_from_document, environment_to_document

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "environment.json"


class EnvironmentNotFoundError(ValidationError):
    help_text = (
        "Environment Not Found - Troubleshooting:\n\n"
        "1. List existing environments: stack-deployer list\n"
        "2. Check the spelling of the environment name\n"
        "3. Create the environment first: stack-deployer create --env-file <file>\n"
        "4. Make sure --config points at the same data root used before"
    )

    def __init__(self, name: str, path: Path) -> None:
        self.name = name
        self.path = path
        super().__init__(f"Environment '{name}' not found (no state file at {path})")


class CorruptStateError(ConfigurationError):
    help_text = (
        "Corrupt Environment State - Troubleshooting:\n\n"
        "1. Inspect the state file shown above for manual edits or truncation\n"
        "2. Restore it from a backup if one exists\n"
        "3. If the environment is no longer needed: stack-deployer purge <env-name> --force"
    )

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Corrupt state file {path}: {reason}")


class EnvironmentStore:
    """Reads and atomically writes ``<data_root>/<name>/environment.json``."""

    def __init__(self, data_root: Path) -> None:
        self.data_root = Path(data_root)

    def state_file(self, name: str) -> Path:
        return self.data_root / str(EnvironmentName(name)) / STATE_FILE_NAME

    def exists(self, name: str) -> bool:
        return self.state_file(name).is_file()

    def load(self, name: str) -> Environment:
        path = self.state_file(name)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise EnvironmentNotFoundError(str(name), path) from None
        except OSError as exc:
            raise FileSystemError("read state file", path, exc) from exc

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CorruptStateError(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc
        try:
            environment = environment_from_document(document)
        except ValidationError as exc:
            raise CorruptStateError(path, str(exc)) from exc
        except (TypeError, AttributeError) as exc:
            raise CorruptStateError(path, f"malformed field ({exc})") from exc

        if environment.name != name:
            raise CorruptStateError(
                path, f"file describes environment '{environment.name}', expected '{name}'"
            )
        logger.debug("Loaded environment %s in state %s", name, environment.state.value)
        return environment

    def persist(self, environment: Environment) -> None:
        target = self.state_file(environment.name)
        payload = json.dumps(environment_to_document(environment), indent=2)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileSystemError("create directory", target.parent, exc) from exc

        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=str(target.parent),
                prefix=f".{STATE_FILE_NAME}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_path = Path(handle.name)
                handle.write(payload)
                handle.write("\n")
                handle.flush()
                os.fsync(handle.fileno())
            self._replace(tmp_path, target)
        except OSError as exc:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except FileNotFoundError:
                    pass
            raise FileSystemError("write state file", target, exc) from exc

        logger.debug("Persisted environment %s in state %s", environment.name, environment.state.value)

    def _replace(self, source: Path, target: Path) -> None:
        os.replace(source, target)

    def list_names(self) -> List[str]:
        if not self.data_root.is_dir():
            return []
        names = []
        for entry in self.data_root.iterdir():
            if entry.is_dir() and (entry / STATE_FILE_NAME).is_file():
                names.append(entry.name)
        return sorted(names)

    def delete(self, name: str) -> None:
        """Remove the state file; removes the environment dir when left empty."""
        path = self.state_file(name)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise FileSystemError("delete state file", path, exc) from exc

        directory = path.parent
        if directory.is_dir() and not any(directory.iterdir()):
            try:
                directory.rmdir()
            except OSError as exc:
                raise FileSystemError("remove directory", directory, exc) from exc
