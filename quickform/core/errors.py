"""Exception hierarchy shared by the filesystem, renderer and pipeline."""

from __future__ import annotations


class QuickformError(Exception):
    """Base class for every error raised by quickform."""


class PathError(QuickformError):
    """Raised when a virtual path cannot be created, listed or read."""

    def __init__(self, path: str, message: str | None = None) -> None:
        self.path = path
        super().__init__(message or f"{type(self).__name__}: {path!r}")


class InvalidPath(PathError):
    """The path resolves to no usable components."""

    def __init__(self, path: str, reason: str = "path has no usable components") -> None:
        super().__init__(path, f"Invalid path {path!r}: {reason}")


class NotADirectory(PathError):
    """An intermediate component of the path is a file."""

    def __init__(self, path: str) -> None:
        super().__init__(path, f"{path!r} is not a directory")


class AlreadyExists(PathError):
    """The leaf of a strict create already exists."""

    def __init__(self, path: str) -> None:
        super().__init__(path, f"{path!r} already exists")


class NotFound(PathError, LookupError):
    """Nothing exists at the path."""

    def __init__(self, path: str) -> None:
        super().__init__(path, f"{path!r} not found")


class DiskIOError(QuickformError):
    """Raised when importing from or exporting to a real directory fails."""

    def __init__(self, real_path: object, message: str) -> None:
        self.real_path = real_path
        super().__init__(f"{message}: {real_path}")


class TemplateError(QuickformError):
    """Raised when a template cannot be resolved or rendered."""

    operation_index: int | None = None

    def __init__(self, template: str, message: str) -> None:
        self.template = template
        super().__init__(message)


class TemplateNotFound(TemplateError):
    def __init__(self, template: str) -> None:
        super().__init__(template, f"Template not found: {template}")


class TemplateSyntaxError(TemplateError):
    def __init__(self, template: str, message: str, lineno: int | None = None) -> None:
        self.lineno = lineno
        location = f"{template}:{lineno}" if lineno is not None else template
        super().__init__(template, f"Template syntax error in {location}: {message}")


class TemplateEvalError(TemplateError):
    def __init__(self, template: str, message: str) -> None:
        super().__init__(template, f"Failed to render {template}: {message}")


class ContextConversionError(QuickformError):
    """A render operation returned something that is not a structured tree."""


class StateBindingError(QuickformError, TypeError):
    """An operation body asks for state the registry cannot supply."""


class RegistryFrozenError(QuickformError):
    """Raised when registering operations or state after a run has started."""


class OperationError(QuickformError):
    """Wraps a failure raised by an operation body."""

    def __init__(
        self,
        index: int,
        kind: str,
        label: str,
        template: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.index = index
        self.kind = kind
        self.label = label
        self.template = template
        target = f" (template {template})" if template else ""
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"Operation #{index} {label!r} [{kind}]{target} failed{detail}")
