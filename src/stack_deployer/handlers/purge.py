"""Purge command handler: removes everything local about an environment."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from ..domain import EnvironmentName, StateTag
from ..errors import DeployerError, FileSystemError, WrongStateError
from ..output import NullOutput, UserOutput
from ..persistence import CorruptStateError, EnvironmentStore
from .errors import PurgeCommandError

logger = logging.getLogger(__name__)


class PurgeCommandHandler:
    def __init__(self, store: EnvironmentStore, build_root: Path) -> None:
        self.store = store
        self.build_root = Path(build_root)

    def execute(self, name: str, force: bool = False, output: Optional[UserOutput] = None) -> None:
        output = output or NullOutput()
        try:
            env_name = EnvironmentName(name)
            environment = self.store.load(env_name)
        except CorruptStateError as exc:
            if not force:
                raise PurgeCommandError(f"Cannot purge '{name}': {exc}", cause=exc) from exc
            logger.warning("[%s] purging environment with corrupt state", name)
            environment = None
        except DeployerError as exc:
            raise PurgeCommandError(f"Cannot purge '{name}': {exc}", cause=exc) from exc

        if environment is not None and environment.state is not StateTag.DESTROYED and not force:
            error = WrongStateError(f"purge environment '{name}'", [StateTag.DESTROYED.value], environment.state.value)
            raise PurgeCommandError(str(error), cause=error)

        directories = [self.store.state_file(env_name).parent, self.build_root / env_name]
        if environment is not None:
            directories += [environment.data_dir, environment.build_dir]
        for directory in dict.fromkeys(directories):
            if not directory.exists():
                continue
            try:
                shutil.rmtree(directory)
            except OSError as exc:
                error = FileSystemError("remove", directory, exc)
                raise PurgeCommandError(f"Cannot purge '{name}': {error}", cause=error) from exc
            logger.info("[%s] removed %s", name, directory)

        try:
            self.store.delete(env_name)
        except DeployerError as exc:
            raise PurgeCommandError(f"Cannot purge '{name}': {exc}", cause=exc) from exc

        output.success(f"Environment '{name}' purged")
