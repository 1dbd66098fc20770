"""Template rendering engine."""

from __future__ import annotations

import logging
import os
from typing import Any

import jinja2
from jinja2 import BaseLoader, Environment, FileSystemLoader, StrictUndefined, Template

from ..core import errors
from ..fs.memfs import VirtualFileSystem, join_path, split_path
from .context import template_variables, to_context_value
from .loaders import VirtualFileSystemLoader

logger = logging.getLogger(__name__)

# Exceptions a template body can raise while being evaluated.
_EVAL_ERRORS = (jinja2.TemplateError, TypeError, ValueError, ArithmeticError, LookupError, AttributeError)


class TemplateResolver:
    """Resolve template paths and render them against a context value.

    The backend is picked at construction: :meth:`from_directory` reads
    templates from a real directory, :meth:`from_filesystem` from a
    :class:`VirtualFileSystem`. Both use virtual path semantics for names.
    """

    def __init__(
        self,
        loader: BaseLoader,
        *,
        trim_blocks: bool = True,
        lstrip_blocks: bool = True,
        keep_trailing_newline: bool = True,
    ) -> None:
        self.environment = Environment(
            loader=loader,
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=trim_blocks,
            lstrip_blocks=lstrip_blocks,
            keep_trailing_newline=keep_trailing_newline,
        )

    @classmethod
    def from_directory(cls, root: str | os.PathLike[str], **options: Any) -> "TemplateResolver":
        """Build a resolver that reads templates under a real directory."""
        return cls(FileSystemLoader(os.fspath(root)), **options)

    @classmethod
    def from_filesystem(cls, filesystem: VirtualFileSystem, **options: Any) -> "TemplateResolver":
        """Build a resolver that reads templates from a virtual filesystem."""
        return cls(VirtualFileSystemLoader(filesystem), **options)

    def load_template(self, template_path: str) -> Template:
        """Load and compile a template by virtual path.

        Args:
            template_path: '/'-delimited path relative to the template root

        Returns:
            Compiled Jinja2 template

        Raises:
            TemplateNotFound: nothing exists at the path
            TemplateSyntaxError: the template cannot be compiled
        """
        try:
            name = join_path(*split_path(template_path))
        except errors.InvalidPath as exc:
            raise errors.TemplateNotFound(template_path) from exc
        if not name:
            raise errors.TemplateNotFound(template_path)

        try:
            return self.environment.get_template(name)
        except jinja2.TemplateNotFound as exc:
            raise errors.TemplateNotFound(name) from exc
        except jinja2.TemplateSyntaxError as exc:
            raise errors.TemplateSyntaxError(exc.name or name, exc.message or str(exc), exc.lineno) from exc
        except UnicodeDecodeError as exc:
            raise errors.TemplateSyntaxError(name, "template source is not valid UTF-8 text") from exc

    def render(self, template_path: str, context: Any) -> str:
        """Render a template with the given context value.

        Args:
            template_path: '/'-delimited path relative to the template root
            context: Any value convertible to a mapping/sequence/scalar tree

        Returns:
            Rendered text
        """
        logger.debug(f"Rendering template: {template_path}")
        template = self.load_template(template_path)
        return self._render(template, template.name or template_path, context)

    def render_string(self, source: str, context: Any, name: str = "<string>") -> str:
        """Render an ad-hoc template source with the same environment."""
        try:
            template = self.environment.from_string(source)
        except jinja2.TemplateSyntaxError as exc:
            raise errors.TemplateSyntaxError(name, exc.message or str(exc), exc.lineno) from exc
        return self._render(template, name, context)

    def _render(self, template: Template, name: str, context: Any) -> str:
        variables = template_variables(to_context_value(context))
        try:
            return template.render(**variables)
        except jinja2.TemplateNotFound as exc:
            # Raised by {% include %} / {% extends %} of a missing template.
            raise errors.TemplateNotFound(exc.name or name) from exc
        except jinja2.TemplateSyntaxError as exc:
            raise errors.TemplateSyntaxError(exc.name or name, exc.message or str(exc), exc.lineno) from exc
        except _EVAL_ERRORS as exc:
            raise errors.TemplateEvalError(name, str(exc)) from exc

    def list_templates(self) -> list[str]:
        return self.environment.list_templates()
