"""Jinja2 loader backed by a virtual filesystem."""

from __future__ import annotations

import logging
from typing import Callable

from jinja2 import BaseLoader, Environment, TemplateNotFound

from ..core.errors import InvalidPath
from ..fs.memfs import VirtualFileSystem, join_path, split_path

logger = logging.getLogger(__name__)


def _always_current() -> bool:
    return True


class VirtualFileSystemLoader(BaseLoader):
    """Resolve template names as paths inside a :class:`VirtualFileSystem`.

    Compiled templates are never reported stale, so the environment keeps
    serving the first compiled version of a path for its lifetime.
    """

    def __init__(self, filesystem: VirtualFileSystem, encoding: str = "utf-8") -> None:
        self.filesystem = filesystem
        self.encoding = encoding

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str | None, Callable[[], bool] | None]:
        try:
            path = join_path(*split_path(template))
        except InvalidPath as exc:
            raise TemplateNotFound(template) from exc

        if not path or not self.filesystem.is_file(path):
            raise TemplateNotFound(template)

        logger.debug(f"Loading template source from virtual path {path}")
        source = self.filesystem.read_file(path).decode(self.encoding)
        return source, path, _always_current

    def list_templates(self) -> list[str]:
        return sorted(self.filesystem)
