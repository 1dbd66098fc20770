from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest

from quickform.core.errors import StateBindingError
from quickform.pipeline.operation import (
    RenderOperation,
    StateOperation,
    StateSlot,
    bind_state,
    default_slot_name,
)
from quickform.pipeline.registry import OperationRegistry
from quickform.pipeline.state import StateCell


@dataclass
class User:
    name: str
    age: int = 30


@dataclass
class Config:
    timeout: float


@dataclass
class GenerationContext:
    user_prompt: str


def _slots(*values):
    return [
        StateSlot(index=i, name=default_slot_name(type(value)), cell=StateCell(value))
        for i, value in enumerate(values)
    ]


def test_default_slot_names_are_snake_case():
    assert default_slot_name(GenerationContext) == "generation_context"
    assert default_slot_name(User) == "user"
    assert default_slot_name(int) == "int"


def test_binds_by_annotated_type_in_order():
    slots = _slots(User("Bob"), Config(30.0))

    def op(user: StateCell[User], config: StateCell[Config]) -> None:
        return None

    bindings = bind_state(op, slots)

    assert [b.slot.name for b in bindings] == ["user", "config"]
    assert bindings[0].slot.cell is slots[0].cell


def test_binds_an_ordered_subsequence():
    slots = _slots(User("Bob"), Config(30.0), 7)

    def op(count: StateCell[int]) -> None:
        return None

    bindings = bind_state(op, slots)
    assert [b.slot.index for b in bindings] == [2]


def test_zero_parameter_body_binds_nothing():
    assert bind_state(lambda: {"ok": True}, _slots(User("Bob"))) == ()


def test_binds_by_parameter_name_without_annotation():
    slots = _slots(User("Bob"), Config(30.0))

    def op(config, retries=3):
        return None

    bindings = bind_state(op, slots)
    assert [(b.parameter, b.slot.name) for b in bindings] == [("config", "config")]


def test_out_of_order_request_is_rejected():
    slots = _slots(User("Bob"), Config(30.0))

    def op(config: StateCell[Config], user: StateCell[User]) -> None:
        return None

    with pytest.raises(StateBindingError, match="order"):
        bind_state(op, slots)


def test_unsatisfiable_parameter_is_rejected():
    slots = _slots(User("Bob"))

    def op(label: StateCell[str]) -> None:
        return None

    with pytest.raises(StateBindingError, match="label"):
        bind_state(op, slots)


def test_name_match_with_wrong_type_is_rejected():
    slots = _slots(User("Bob"), Config(30.0))

    def op(config: StateCell[User]) -> None:
        return None

    # Only the Config slot is declared.
    with pytest.raises(StateBindingError):
        bind_state(op, slots[1:])


def test_explicit_requires_must_follow_declaration_order():
    slots = _slots(User("Bob"), Config(30.0))

    def op(a, b):
        return None

    assert [b.slot.name for b in bind_state(op, slots, requires=["user", "config"])] == ["user", "config"]
    with pytest.raises(StateBindingError, match="order"):
        bind_state(op, slots, requires=["config", "user"])
    with pytest.raises(StateBindingError, match="unknown"):
        bind_state(op, slots, requires=["user", "missing"])


def test_explicit_requires_must_match_arity():
    slots = _slots(User("Bob"), Config(30.0))

    def op(a, b):
        return None

    with pytest.raises(StateBindingError):
        bind_state(op, slots, requires=["user"])


def test_non_callable_body_is_rejected():
    with pytest.raises(StateBindingError):
        bind_state("not callable", [])  # type: ignore[arg-type]


def test_render_operation_normalizes_template_path():
    op = RenderOperation(body=lambda: {}, template="/models//user.ts/")

    assert op.template == "models/user.ts"
    assert op.kind == "render"
    assert StateOperation(body=lambda: None).kind == "state"


def test_render_operation_requires_template():
    with pytest.raises(ValueError):
        RenderOperation(body=lambda: {}, template="  ")


def test_repeated_state_types_get_unique_names():
    registry = OperationRegistry().with_state(1).with_state(2).with_state(3)

    assert [slot.name for slot in registry.states] == ["int", "int_1", "int_2"]


def test_three_cells_of_same_type_bind_positionally():
    async def three_params(x: StateCell[int], y: StateCell[int], z: StateCell[int]) -> int:
        return await x.snapshot() + await y.snapshot() + await z.snapshot()

    registry = (
        OperationRegistry()
        .with_state(1)
        .with_state(2)
        .with_state(3)
        .render_operation("sum.txt", three_params)
    )

    assert asyncio.run(registry.run_operation(0)) == 6


def test_operation_receives_shared_handle_not_copy():
    seen = []

    def op(user: StateCell[User]) -> None:
        seen.append(user)

    registry = OperationRegistry().with_state(User("Alice")).state_operation(op)
    asyncio.run(registry.run_operation(0))

    assert seen == [registry.state_cell("user")]
    assert seen[0] is registry.state_cell("user")


def test_locally_defined_state_type_binds_under_postponed_annotations():
    class Account:
        pass

    def body(u: StateCell[Account]) -> None:
        return None

    registry = OperationRegistry().with_state(Account(), name="account").state_operation(body)

    assert registry.operations[0].state_names == ("account",)


def test_closure_variables_resolve_annotations():
    class Budget:
        limit = 10

    def body(budget_state: StateCell[Budget]) -> int:
        return Budget.limit

    bindings = bind_state(body, [StateSlot(index=0, name="budget", cell=StateCell(Budget()))])

    assert [b.slot.name for b in bindings] == ["budget"]


def test_unresolved_annotation_of_another_type_is_named_in_error():
    class Account:
        pass

    class Invoice:
        pass

    def body(invoice: StateCell[Invoice]) -> None:
        return None

    with pytest.raises(StateBindingError, match="unresolved annotation"):
        OperationRegistry().with_state(Account(), name="account").state_operation(body)


def test_bool_state_does_not_satisfy_int():
    def body(count: StateCell[int]) -> None:
        return None

    with pytest.raises(StateBindingError):
        OperationRegistry().with_state(True, name="enabled").state_operation(body)
    bindings = bind_state(body, _slots(True, 3))
    assert [b.slot.index for b in bindings] == [1]
