"""Conversion of operation results into template context values."""

from __future__ import annotations

from typing import Any

from pydantic_core import PydanticSerializationError, to_jsonable_python

from ..core.errors import ContextConversionError

CONTEXT_VARIABLE = "context"


def to_context_value(value: Any) -> Any:
    """Convert ``value`` into a tree of mappings, sequences and scalars.

    Pydantic models, dataclasses, sets, enums, dates and paths are all
    accepted.

    Raises:
        ContextConversionError: the value contains something that has no
            structured representation
    """
    try:
        return to_jsonable_python(value)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise ContextConversionError(
            f"Cannot convert {type(value).__name__} into a template context: {exc}"
        ) from exc


def template_variables(value: Any) -> dict[str, Any]:
    """Expose a context value to a template.

    The whole value is bound to ``context``; when it is a mapping its keys
    are also top-level variables (and win over ``context``).
    """
    variables: dict[str, Any] = {CONTEXT_VARIABLE: value}
    if isinstance(value, dict):
        variables.update({str(key): item for key, item in value.items()})
    return variables
