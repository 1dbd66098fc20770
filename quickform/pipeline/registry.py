"""Operation registry: the generation pipeline driver."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Literal, Sequence, TypeVar

from ..core.errors import (
    ContextConversionError,
    DiskIOError,
    OperationError,
    PathError,
    RegistryFrozenError,
    TemplateError,
)
from ..core.models import OperationRecord, RunReport
from ..fs.memfs import VirtualFileSystem
from ..rendering.context import to_context_value
from ..rendering.engine import TemplateResolver
from ..settings import Settings, get_settings
from .operation import (
    Operation,
    RenderOperation,
    StateOperation,
    StateSlot,
    bind_state,
    default_slot_name,
)
from .state import StateCell

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class OperationRegistry:
    """Ordered list of operations run against shared state and templates.

    Build it with :meth:`with_state`, :meth:`state_operation` and
    :meth:`render_operation` (or the :meth:`state` / :meth:`render`
    decorators), then call :meth:`run`. Operations execute one at a time in
    registration order; render results are written into the virtual
    filesystem, which is exported once every operation has succeeded.
    """

    def __init__(
        self,
        filesystem: VirtualFileSystem | None = None,
        resolver: TemplateResolver | None = None,
    ) -> None:
        self._filesystem = filesystem if filesystem is not None else VirtualFileSystem()
        self._resolver = resolver if resolver is not None else TemplateResolver.from_filesystem(self._filesystem)
        self._slots: list[StateSlot] = []
        self._operations: list[Operation] = []
        self._frozen = False
        self._running = False

    @classmethod
    def from_dir(
        cls,
        template_dir: str | os.PathLike[str],
        *,
        loader: Literal["memory", "disk"] = "memory",
        **options: Any,
    ) -> "OperationRegistry":
        """Create a registry whose templates live under ``template_dir``.

        ``loader="memory"`` imports the whole directory into the virtual
        filesystem, so untouched files are exported alongside rendered ones.
        ``loader="disk"`` reads templates straight from disk and starts from an
        empty virtual filesystem.
        """
        root = Path(template_dir)
        if loader == "memory":
            filesystem = VirtualFileSystem.import_from_disk(root)
            return cls(filesystem, TemplateResolver.from_filesystem(filesystem, **options))
        if loader == "disk":
            if not root.is_dir():
                raise DiskIOError(root, "Template directory not found")
            return cls(VirtualFileSystem(), TemplateResolver.from_directory(root, **options))
        raise ValueError(f"Unknown template loader: {loader!r}")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "OperationRegistry":
        settings = settings or get_settings()
        if settings.template_dir is None:
            filesystem = VirtualFileSystem()
            return cls(filesystem, TemplateResolver.from_filesystem(filesystem, **settings.jinja_options()))
        return cls.from_dir(
            settings.template_dir,
            loader=settings.template_loader,
            **settings.jinja_options(),
        )

    @property
    def filesystem(self) -> VirtualFileSystem:
        return self._filesystem

    @property
    def resolver(self) -> TemplateResolver:
        return self._resolver

    @property
    def states(self) -> tuple[StateSlot, ...]:
        return tuple(self._slots)

    @property
    def operations(self) -> tuple[Operation, ...]:
        return tuple(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def _ensure_open(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("Cannot modify a registry once it has started running")

    def with_state(self, value: Any, *, name: str | None = None) -> "OperationRegistry":
        """Declare one more state cell.

        ``value`` may already be a :class:`StateCell`, in which case that cell is
        shared rather than wrapped again. Without ``name`` the slot is named
        after the value's type (``int``, ``int_1``, ... on repeats).
        """
        self._ensure_open()
        cell = value if isinstance(value, StateCell) else StateCell(value)
        taken = {slot.name for slot in self._slots}

        if name is not None:
            if not name.isidentifier():
                raise ValueError(f"State name must be an identifier: {name!r}")
            if name in taken:
                raise ValueError(f"State {name!r} is already declared")
            slot_name = name
        else:
            base = default_slot_name(cell.value_type)
            slot_name, suffix = base, 1
            while slot_name in taken:
                slot_name = f"{base}_{suffix}"
                suffix += 1

        slot = StateSlot(index=len(self._slots), name=slot_name, cell=cell)
        self._slots.append(slot)
        logger.debug(f"Declared state #{slot.index} {slot.name}: {slot.value_type.__name__}")
        return self

    def state_cell(self, name: str) -> StateCell[Any]:
        """Return the shared cell declared under ``name``."""
        for slot in self._slots:
            if slot.name == name:
                return slot.cell
        raise KeyError(f"No state declared as {name!r}")

    def state_operation(
        self,
        body: Callable[..., Any],
        *,
        requires: Sequence[str] | None = None,
        label: str | None = None,
    ) -> "OperationRegistry":
        """Append an operation run only for its effect on state."""
        self._ensure_open()
        bindings = bind_state(body, self._slots, requires)
        operation = StateOperation(body=body, bindings=bindings, label=label or "")
        self._operations.append(operation)
        logger.debug(f"Registered state operation #{len(self._operations) - 1} {operation.label}")
        return self

    def render_operation(
        self,
        template_path: str,
        body: Callable[..., Any],
        *,
        requires: Sequence[str] | None = None,
        label: str | None = None,
    ) -> "OperationRegistry":
        """Append an operation whose result is rendered against ``template_path``.

        The rendered text replaces the file at ``template_path`` in the virtual
        filesystem. Several operations may target the same path; the last one
        to run wins.
        """
        self._ensure_open()
        bindings = bind_state(body, self._slots, requires)
        operation = RenderOperation(body=body, bindings=bindings, label=label or "", template=template_path)
        if any(isinstance(op, RenderOperation) and op.template == operation.template for op in self._operations):
            logger.warning(
                f"Template {operation.template} is already targeted by another operation; "
                "the later render overwrites the earlier one"
            )
        self._operations.append(operation)
        logger.debug(
            f"Registered render operation #{len(self._operations) - 1} {operation.label} -> {operation.template}"
        )
        return self

    def state(self, *, requires: Sequence[str] | None = None) -> Callable[[F], F]:
        """Decorator form of :meth:`state_operation`."""

        def decorator(fn: F) -> F:
            self.state_operation(fn, requires=requires)
            return fn

        return decorator

    def render(self, template_path: str, *, requires: Sequence[str] | None = None) -> Callable[[F], F]:
        """Decorator form of :meth:`render_operation`."""

        def decorator(fn: F) -> F:
            self.render_operation(template_path, fn, requires=requires)
            return fn

        return decorator

    async def run_operation(self, index: int) -> Any:
        """Execute one operation in isolation.

        Returns the converted context value for render operations and ``None``
        for state operations. Nothing is rendered or written.
        """
        try:
            operation = self._operations[index]
        except IndexError:
            raise IndexError(f"No operation at index {index} ({len(self._operations)} registered)") from None
        result = await operation.invoke()
        if isinstance(operation, RenderOperation):
            return to_context_value(result)
        return None

    async def run(self, output_dir: str | os.PathLike[str]) -> RunReport:
        """Run every operation in order, then export the virtual filesystem.

        The first failure stops the run: nothing is exported, and state
        mutations committed by earlier operations are kept.

        Raises:
            OperationError: an operation body failed
            TemplateError: a template could not be resolved or rendered
            PathError: a rendered file could not be written into the tree
            DiskIOError: the export failed partway
        """
        if self._running:
            raise RuntimeError("Registry is already running")
        self._frozen = True
        self._running = True
        output = Path(output_dir)
        try:
            logger.info(f"Running {len(self._operations)} operation(s) into {output}")
            records: list[OperationRecord] = []
            written: list[str] = []
            for index, operation in enumerate(self._operations):
                records.append(await self._execute(index, operation, written))
            exported = self._filesystem.export_to_disk(output)
        finally:
            self._running = False

        return RunReport(output_dir=output, operations=records, written=written, exported=exported)

    async def _execute(self, index: int, operation: Operation, written: list[str]) -> OperationRecord:
        template = operation.template if isinstance(operation, RenderOperation) else None
        started = time.perf_counter()

        try:
            result = await operation.invoke()
        except Exception as exc:
            logger.error(f"Operation #{index} {operation.label} failed: {exc}")
            raise OperationError(index, operation.kind, operation.label, template, cause=exc) from exc

        if isinstance(operation, RenderOperation):
            try:
                context = to_context_value(result)
            except ContextConversionError as exc:
                logger.error(f"Operation #{index} {operation.label} returned an unusable context: {exc}")
                raise OperationError(index, operation.kind, operation.label, template, cause=exc) from exc

            try:
                rendered = self._resolver.render(operation.template, context)
            except TemplateError as exc:
                exc.operation_index = index
                logger.error(f"Operation #{index} {operation.label} could not render {template}: {exc}")
                raise

            try:
                self._filesystem.write_file(operation.template, rendered)
            except PathError as exc:
                logger.error(f"Operation #{index} {operation.label} could not write {template}: {exc}")
                raise
            written.append(operation.template)

        duration = time.perf_counter() - started
        logger.info(f"Operation #{index} {operation.label} [{operation.kind}] done in {duration:.3f}s")
        return OperationRecord(
            index=index,
            kind=operation.kind,
            label=operation.label,
            template=template,
            duration_s=duration,
        )
