"""Operation pipeline: shared state, operations and the registry."""

from .operation import Binding, Operation, RenderOperation, StateOperation, StateSlot, bind_state
from .registry import OperationRegistry
from .state import StateCell

__all__ = [
    "Binding",
    "Operation",
    "OperationRegistry",
    "RenderOperation",
    "StateCell",
    "StateOperation",
    "StateSlot",
    "bind_state",
]
