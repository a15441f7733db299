"""Destroy steps: infrastructure teardown and local cleanup."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..errors import FileSystemError
from .base import Step, StepContext

logger = logging.getLogger(__name__)


class InfrastructureTeardown(Step):
    step_id = "InfrastructureTeardown"
    description = "Destroying infrastructure"

    def execute(self, ctx: StepContext) -> None:
        ctx.tools.tofu(ctx.environment.tofu_build_dir).destroy(auto_approve=True)


class CleanupLocalState(Step):
    """Removes the environment's data and build directories.

    Missing directories are not an error, so the step can be repeated.
    With `preserve_tofu_dir` the provisioning working directory (and the
    tofu state inside it) survives so a later destroy can still tear the
    infrastructure down.
    """

    step_id = "CleanupLocalState"
    description = "Cleaning up local state"

    def __init__(self, preserve_tofu_dir: bool = False) -> None:
        self.preserve_tofu_dir = preserve_tofu_dir

    def execute(self, ctx: StepContext) -> None:
        environment = ctx.environment
        _remove_tree(environment.data_dir)
        if not self.preserve_tofu_dir:
            _remove_tree(environment.build_dir)
            return

        kept = environment.tofu_build_dir.relative_to(environment.build_dir).parts[0]
        if environment.build_dir.is_dir():
            for entry in environment.build_dir.iterdir():
                if entry.name != kept:
                    _remove_tree(entry)
        logger.info("[%s] kept %s for a later teardown", environment.name, environment.tofu_build_dir)


def _remove_tree(path: Path) -> None:
    if not path.exists() and not path.is_symlink():
        logger.debug("Nothing to remove at %s", path)
        return
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as exc:
        raise FileSystemError("remove", path, exc) from exc
    logger.info("Removed %s", path)
