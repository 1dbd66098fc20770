"""Template resolution and rendering."""

from .context import template_variables, to_context_value
from .engine import TemplateResolver
from .loaders import VirtualFileSystemLoader

__all__ = ["TemplateResolver", "VirtualFileSystemLoader", "template_variables", "to_context_value"]
