"""Operation variants and the binding of state cells to operation bodies.

A registry declares an ordered list of state slots. Each operation body asks
for an ordered subsequence of those slots through its parameters: either
annotated as ``StateCell[T]`` (matched by type) or named after a slot
(matched by name). Binding happens once, when the operation is registered,
so a body that cannot be satisfied is rejected before anything runs.
"""

from __future__ import annotations

import inspect
import logging
import re
import types
import typing
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Sequence, TypeAlias, Union

from ..core.errors import StateBindingError
from ..fs.memfs import join_path, split_path
from .state import StateCell

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
_CELL_ANNOTATION = re.compile(r"^(?:[A-Za-z_][\w.]*\.)?StateCell(?:\[(?P<inner>.*)\])?$")
_BINDABLE_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.KEYWORD_ONLY,
)


@dataclass(frozen=True)
class StateSlot:
    """One declared state cell and its position in the registry."""

    index: int
    name: str
    cell: StateCell[Any]

    @property
    def value_type(self) -> type:
        return self.cell.value_type


@dataclass(frozen=True)
class Binding:
    """Supplies ``slot``'s cell to ``parameter`` (positionally when None)."""

    parameter: str | None
    slot: StateSlot


def default_slot_name(value_type: type) -> str:
    """Derive a slot name from a type name: ``GenerationContext`` -> ``generation_context``."""
    return _CAMEL_BOUNDARY.sub("_", value_type.__name__).lower()


def callable_label(body: Callable[..., Any]) -> str:
    return getattr(body, "__qualname__", None) or getattr(body, "__name__", None) or repr(body)


def _requested_type(annotation: Any) -> tuple[bool, Any]:
    """Return ``(is_state_cell, inner_type)`` for a parameter annotation.

    An annotation that could not be evaluated stays a string; the inner type
    is then returned as its source text.
    """
    if isinstance(annotation, str):
        match = _CELL_ANNOTATION.match(annotation.replace(" ", ""))
        if match is None:
            return False, None
        return True, match.group("inner") or Any
    if annotation is StateCell:
        return True, Any
    if typing.get_origin(annotation) is StateCell:
        args = typing.get_args(annotation)
        return True, args[0] if args else Any
    return False, None


def _type_names(expr: str) -> set[str]:
    """Top-level type names of an annotation string: ``"User | None"`` -> ``{"User", "None"}``."""
    names: set[str] = set()
    depth, start = 0, 0
    for i, char in enumerate(expr + "|"):
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        elif char == "|" and depth == 0:
            head, _, inner = expr[start:i].strip().partition("[")
            head = head.rsplit(".", 1)[-1]
            if head in ("Optional", "Union") and inner:
                names |= _type_names(inner[:-1].replace(",", "|"))
            elif head:
                names.add(head)
            start = i + 1
    return names


def _accepts(expected: Any, actual: type) -> bool:
    """Whether a slot holding ``actual`` satisfies a ``StateCell[expected]`` request.

    ``bool`` never satisfies ``int``. Unresolved annotations match by class name.
    """
    if expected is Any:
        return True
    if isinstance(expected, str):
        names = _type_names(expected)
        candidates = (actual,) if actual is bool else actual.__mro__
        return "Any" in names or any(cls.__name__ in names for cls in candidates)
    origin = typing.get_origin(expected)
    if origin in (Union, types.UnionType):
        return any(_accepts(arg, actual) for arg in typing.get_args(expected))
    if origin is not None:
        expected = origin
    if actual is bool and expected is int:
        return False
    return isinstance(expected, type) and issubclass(actual, expected)


def _annotation_namespaces(body: Callable[..., Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    target = body.__call__ if not inspect.isroutine(body) and callable(body) else body
    target = inspect.unwrap(target)
    globalns = dict(getattr(target, "__globals__", {}))
    localns: dict[str, Any] = {}
    if inspect.isfunction(target):
        try:
            localns.update(inspect.getclosurevars(target).nonlocals)
        except ValueError:
            # A closure cell that is not assigned yet.
            pass
    return globalns, localns


def _resolve_annotation(annotation: Any, globalns: dict[str, Any], localns: dict[str, Any]) -> Any:
    """Evaluate a postponed annotation, leaving it a string when it cannot be."""
    if not isinstance(annotation, str):
        return annotation
    try:
        return eval(annotation, globalns, localns)
    except (NameError, AttributeError, SyntaxError, TypeError):
        return annotation


def _explicit_bindings(
    body: Callable[..., Any], slots: Sequence[StateSlot], requires: Sequence[str]
) -> tuple[Binding, ...]:
    by_name = {slot.name: slot for slot in slots}
    bindings: list[Binding] = []
    last = -1
    for name in requires:
        slot = by_name.get(name)
        if slot is None:
            raise StateBindingError(
                f"{callable_label(body)} requires unknown state {name!r}; declared: {list(by_name)}"
            )
        if slot.index <= last:
            raise StateBindingError(
                f"{callable_label(body)} requires state out of declaration order at {name!r}"
            )
        last = slot.index
        bindings.append(Binding(parameter=None, slot=slot))
    return tuple(bindings)


def _inferred_bindings(body: Callable[..., Any], slots: Sequence[StateSlot]) -> tuple[Binding, ...]:
    label = callable_label(body)
    globalns, localns = _annotation_namespaces(body)
    by_name = {slot.name: slot for slot in slots}
    bindings: list[Binding] = []
    last = -1

    for param in inspect.signature(body).parameters.values():
        if param.kind not in _BINDABLE_KINDS:
            continue
        annotation = _resolve_annotation(param.annotation, globalns, localns)
        is_cell, wanted = _requested_type(annotation)

        slot: StateSlot | None = None
        if is_cell:
            slot = next(
                (s for s in slots if s.index > last and _accepts(wanted, s.value_type)),
                None,
            )
        if slot is None and param.name in by_name:
            named = by_name[param.name]
            if named.index <= last:
                raise StateBindingError(
                    f"{label}: parameter {param.name!r} requests state out of declaration order"
                )
            if is_cell and not _accepts(wanted, named.value_type):
                raise StateBindingError(
                    f"{label}: parameter {param.name!r} expects {wanted!r} but state "
                    f"{named.name!r} holds {named.value_type.__name__}"
                )
            slot = named

        if slot is None:
            if param.default is not inspect.Parameter.empty:
                continue
            declared = ", ".join(f"{s.name}: {s.value_type.__name__}" for s in slots) or "none"
            unresolved = f", unresolved annotation {annotation!r}" if isinstance(annotation, str) else ""
            raise StateBindingError(
                f"{label}: no declared state satisfies parameter {param.name!r} "
                f"(declared state: {declared}{unresolved})"
            )

        last = slot.index
        bindings.append(Binding(parameter=param.name, slot=slot))

    return tuple(bindings)


def bind_state(
    body: Callable[..., Any],
    slots: Sequence[StateSlot],
    requires: Sequence[str] | None = None,
) -> tuple[Binding, ...]:
    """Work out which declared slots ``body`` receives.

    Raises:
        StateBindingError: the body's parameters cannot be satisfied by an
            ordered subsequence of ``slots``
    """
    if not callable(body):
        raise StateBindingError(f"Operation body must be callable (type={type(body).__name__})")

    if requires is not None:
        bindings = _explicit_bindings(body, slots, requires)
    else:
        bindings = _inferred_bindings(body, slots)

    args, kwargs = _arguments(bindings)
    try:
        inspect.signature(body).bind(*args, **kwargs)
    except TypeError as exc:
        raise StateBindingError(f"{callable_label(body)}: {exc}") from exc

    logger.debug(
        f"Bound {callable_label(body)} to state {[b.slot.name for b in bindings]}"
    )
    return bindings


def _arguments(bindings: Sequence[Binding]) -> tuple[list[Any], dict[str, Any]]:
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    for binding in bindings:
        if binding.parameter is None:
            args.append(binding.slot.cell)
        else:
            kwargs[binding.parameter] = binding.slot.cell
    return args, kwargs


@dataclass(frozen=True)
class _BoundOperation:
    body: Callable[..., Any]
    bindings: tuple[Binding, ...] = ()
    label: str = ""

    kind: ClassVar[str] = ""

    def __post_init__(self) -> None:
        if not callable(self.body):
            raise TypeError(f"Operation body must be callable (type={type(self.body).__name__})")
        if not self.label:
            object.__setattr__(self, "label", callable_label(self.body))

    @property
    def state_names(self) -> tuple[str, ...]:
        return tuple(binding.slot.name for binding in self.bindings)

    async def invoke(self) -> Any:
        """Call the body with its bound cells and await the result if needed."""
        args, kwargs = _arguments(self.bindings)
        result = self.body(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result


@dataclass(frozen=True)
class StateOperation(_BoundOperation):
    """Runs for its effect on shared state; the result is discarded."""

    kind: ClassVar[str] = "state"


@dataclass(frozen=True)
class RenderOperation(_BoundOperation):
    """Produces a context value rendered against ``template``."""

    template: str = field(default="")

    kind: ClassVar[str] = "render"

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.template, str):
            raise TypeError(
                f"Template path must be a string (type={type(self.template).__name__})"
            )
        template = join_path(*split_path(self.template.strip()))
        if not template:
            raise ValueError("Render operation template path cannot be empty")
        object.__setattr__(self, "template", template)


Operation: TypeAlias = Union[StateOperation, RenderOperation]
