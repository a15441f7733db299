"""Jinja2 rendering of template sets into build directories.

A template set is a directory under the templates root. Files ending in
``.j2`` are rendered with the given context and written without the
suffix; everything else is copied as-is. The relative layout is kept.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, List, Mapping

from jinja2 import Environment as JinjaEnvironment
from jinja2 import FileSystemLoader, StrictUndefined, TemplateError

from ..errors import ConfigurationError, FileSystemError

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".j2"


class TemplateRenderer:
    def __init__(self, templates_root: Path) -> None:
        self.templates_root = Path(templates_root)

    def template_dir(self, template_set: str) -> Path:
        return self.templates_root / template_set

    def render(self, template_set: str, context: Mapping[str, Any], destination: Path) -> List[Path]:
        source = self.template_dir(template_set)
        if not source.is_dir():
            raise ConfigurationError(f"Template set '{template_set}' not found under {self.templates_root}")

        jinja = JinjaEnvironment(
            loader=FileSystemLoader(str(source)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )
        destination = Path(destination)
        written: List[Path] = []
        for path in sorted(p for p in source.rglob("*") if p.is_file()):
            relative = path.relative_to(source)
            if path.suffix == TEMPLATE_SUFFIX:
                target = destination / relative.with_suffix("")
                try:
                    content = jinja.get_template(relative.as_posix()).render(**context)
                except TemplateError as exc:
                    raise ConfigurationError(
                        f"Failed to render template '{template_set}/{relative.as_posix()}': {exc}"
                    ) from exc
                self._write(target, content)
            else:
                target = destination / relative
                self._copy(path, target)
            written.append(target)

        logger.debug("Rendered %d file(s) from '%s' into %s", len(written), template_set, destination)
        return written

    @staticmethod
    def _write(target: Path, content: str) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise FileSystemError("write rendered file", target, exc) from exc

    @staticmethod
    def _copy(source: Path, target: Path) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as exc:
            raise FileSystemError("copy template file", target, exc) from exc
