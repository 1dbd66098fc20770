"""Core errors and models."""

from .errors import (
    AlreadyExists,
    ContextConversionError,
    DiskIOError,
    InvalidPath,
    NotADirectory,
    NotFound,
    OperationError,
    PathError,
    QuickformError,
    RegistryFrozenError,
    StateBindingError,
    TemplateError,
    TemplateEvalError,
    TemplateNotFound,
    TemplateSyntaxError,
)
from .models import NodeInfo, OperationRecord, RunReport

__all__ = [
    "AlreadyExists",
    "ContextConversionError",
    "DiskIOError",
    "InvalidPath",
    "NodeInfo",
    "NotADirectory",
    "NotFound",
    "OperationError",
    "OperationRecord",
    "PathError",
    "QuickformError",
    "RegistryFrozenError",
    "RunReport",
    "StateBindingError",
    "TemplateError",
    "TemplateEvalError",
    "TemplateNotFound",
    "TemplateSyntaxError",
]
