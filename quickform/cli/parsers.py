"""CLI argument parsers and validators."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Any

import typer
import yaml

from ..pipeline.registry import OperationRegistry


def parse_target(value: str) -> tuple[str, str]:
    """Parse a target argument in format MODULE:ATTRIBUTE."""
    module, sep, attribute = value.partition(":")
    if not sep or not module or not attribute:
        raise typer.BadParameter(f"Must be MODULE:ATTRIBUTE, got: {value!r}")
    return module, attribute


def load_registry(value: str) -> OperationRegistry:
    """Import MODULE and return the registry named by ATTRIBUTE.

    The attribute may be a registry or a zero-argument callable returning one.
    The current directory is importable, like ``python -m``.
    """
    module_name, attribute = parse_target(value)
    if "" not in sys.path:
        sys.path.insert(0, "")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import {module_name!r}: {e}") from e

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise typer.BadParameter(f"{module_name!r} has no attribute {attribute!r}") from e

    if callable(target) and not isinstance(target, OperationRegistry):
        target = target()
    if not isinstance(target, OperationRegistry):
        raise typer.BadParameter(
            f"{value!r} is not an OperationRegistry (type={type(target).__name__})"
        )
    return target


def parse_context_file(path: Path | None) -> dict[str, Any]:
    """Load a YAML or JSON mapping used as a render context."""
    if path is None:
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise typer.BadParameter(f"Cannot read context file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise typer.BadParameter(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise typer.BadParameter(f"Context file {path} must contain a mapping")
    return data
