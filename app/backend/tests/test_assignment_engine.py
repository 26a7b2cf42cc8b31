from __future__ import annotations

import pytest

from orgboard.domain.errors import EditPermissionError, InvalidTransitionError, PathNotFoundError
from orgboard.domain.graph import GLOBAL_SCOPE, SHARED_SCOPE, roster_for
from orgboard.services.assignment_engine import AssignmentEngine, AssignmentStatus, DragState

pytestmark = pytest.mark.anyio


def _engine(graph_state, persistence, *, can_edit: bool = True) -> AssignmentEngine:
    return AssignmentEngine(graph_state, persistence, can_edit=can_edit)


def _person(graph_state, person_id: str):
    return graph_state.graph.find_person(person_id)[1]


async def test_drop_on_role_assigns_unassigned_person(graph_state, persistence, store) -> None:
    engine = _engine(graph_state, persistence)

    engine.start_drag("p1")
    assert engine.state is DragState.DRAGGING
    outcome = await engine.drop_on_role("ops")

    assert outcome.status is AssignmentStatus.SAVED
    assert (outcome.assigned_role, outcome.assigned_factory_id) == ("ops", "factoryA")
    assert engine.state is DragState.IDLE
    assert [person.id for person in roster_for(graph_state.graph, "ops")] == ["p1"]
    assert store.write_calls == [
        ("personnel", GLOBAL_SCOPE, {"p1": {"assignedRole": "ops", "assignedFactoryId": "factoryA"}})
    ]


async def test_drop_then_release_is_idempotent(graph_state, persistence, store) -> None:
    engine = _engine(graph_state, persistence)
    engine.start_drag("p1")
    await engine.drop_on_role("ops")

    engine.start_drag("p1")
    first = await engine.drop_on_available()
    engine.start_drag("p1")
    second = await engine.drop_on_available()

    assert first.status is AssignmentStatus.SAVED
    assert second.status is AssignmentStatus.UNCHANGED
    assert _person(graph_state, "p1").assigned_role is None
    assert _person(graph_state, "p1").assigned_factory_id is None
    assert len(store.write_calls) == 2
    assert store.snapshot("personnel", GLOBAL_SCOPE)["p1"]["assignedRole"] is None


async def test_drop_on_current_role_makes_no_store_call(graph_state, persistence, store) -> None:
    engine = _engine(graph_state, persistence)

    engine.start_drag("p2")
    outcome = await engine.drop_on_role("qm")

    assert outcome.status is AssignmentStatus.UNCHANGED
    assert store.write_calls == []


async def test_shared_role_can_be_assigned_from_any_factory(graph_state, persistence, store) -> None:
    engine = _engine(graph_state, persistence)

    engine.start_drag("p2")
    outcome = await engine.drop_on_role("hr", scope=SHARED_SCOPE)

    assert outcome.status is AssignmentStatus.SAVED
    assert (outcome.assigned_role, outcome.assigned_factory_id) == ("hr", SHARED_SCOPE)
    assert roster_for(graph_state.graph, "qm") == ()
    assert store.snapshot("personnel", GLOBAL_SCOPE)["p2"]["assignedFactoryId"] == SHARED_SCOPE


async def test_foreign_factory_role_is_rejected(graph_state, persistence, store) -> None:
    engine = _engine(graph_state, persistence)

    engine.start_drag("p1")
    outcome = await engine.drop_on_role("pm", scope="factoryB")

    assert outcome.status is AssignmentStatus.REJECTED
    assert "factoryB" in outcome.error
    assert _person(graph_state, "p1").assigned_role is None
    assert store.write_calls == []
    assert engine.state is DragState.IDLE


async def test_unknown_role_is_rejected(graph_state, persistence, store) -> None:
    engine = _engine(graph_state, persistence)

    engine.start_drag("p1")
    outcome = await engine.drop_on_role("ghost")

    assert outcome.status is AssignmentStatus.REJECTED
    assert engine.last_error == outcome.error
    assert store.write_calls == []


async def test_failed_drop_rolls_back_both_fields(graph_state, persistence, store) -> None:
    engine = _engine(graph_state, persistence)
    store.fail_next()

    engine.start_drag("p2")
    outcome = await engine.drop_on_role("hr", scope=SHARED_SCOPE)

    assert outcome.status is AssignmentStatus.ROLLED_BACK
    assert not outcome.ok
    assert (outcome.assigned_role, outcome.assigned_factory_id) == ("qm", "factoryA")
    assert [person.id for person in roster_for(graph_state.graph, "qm")] == ["p2"]
    assert engine.last_error == "Failed to save changes."
    assert engine.state is DragState.IDLE


async def test_drag_ended_outside_target_changes_nothing(graph_state, persistence, store) -> None:
    engine = _engine(graph_state, persistence)
    before = graph_state.graph

    engine.start_drag("p1")
    engine.end_drag()

    assert engine.state is DragState.IDLE
    assert graph_state.graph is before
    assert store.write_calls == []
    with pytest.raises(InvalidTransitionError):
        await engine.drop_on_available()


async def test_drag_requires_edit_privilege_and_known_person(graph_state, persistence) -> None:
    viewer = _engine(graph_state, persistence, can_edit=False)
    with pytest.raises(EditPermissionError):
        viewer.start_drag("p1")

    engine = _engine(graph_state, persistence)
    with pytest.raises(PathNotFoundError):
        engine.start_drag("ghost")

    engine.start_drag("p1")
    with pytest.raises(InvalidTransitionError):
        engine.start_drag("p2")
