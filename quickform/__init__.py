"""Quickform - template-driven code generation pipeline.

Operations share injected state, produce template contexts, and render
into an in-memory filesystem that is flushed to disk once per run.
"""

__version__ = "0.1.0"

# Configure logging for library use
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .core.errors import (
    AlreadyExists,
    DiskIOError,
    InvalidPath,
    NotADirectory,
    NotFound,
    OperationError,
    PathError,
    QuickformError,
    StateBindingError,
    TemplateError,
    TemplateEvalError,
    TemplateNotFound,
    TemplateSyntaxError,
)
from .core.models import RunReport
from .fs.memfs import VirtualFileSystem
from .pipeline.registry import OperationRegistry
from .pipeline.state import StateCell
from .rendering.engine import TemplateResolver

__all__ = [
    "AlreadyExists",
    "DiskIOError",
    "InvalidPath",
    "NotADirectory",
    "NotFound",
    "OperationError",
    "OperationRegistry",
    "PathError",
    "QuickformError",
    "RunReport",
    "StateBindingError",
    "StateCell",
    "TemplateError",
    "TemplateEvalError",
    "TemplateNotFound",
    "TemplateResolver",
    "TemplateSyntaxError",
    "VirtualFileSystem",
]
