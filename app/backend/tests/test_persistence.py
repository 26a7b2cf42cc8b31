from __future__ import annotations

import anyio
import pytest
from sqlalchemy import select

from orgboard.domain.errors import DocumentNotFoundError, PersistenceFailure
from orgboard.domain.field_path import personnel_path
from orgboard.domain.graph import GLOBAL_SCOPE, SHARED_SCOPE
from orgboard.models.entities import StoredDocument
from orgboard.services.graph_state import load_graph
from orgboard.services.persistence import InMemoryDocumentStore, PersistenceAdapter, SqlDocumentStore

pytestmark = pytest.mark.anyio


class StalledStore(InMemoryDocumentStore):
    async def write(self, domain, scope_id, partial_update) -> None:
        await anyio.sleep(10)


class BrokenStore(InMemoryDocumentStore):
    async def write(self, domain, scope_id, partial_update) -> None:
        raise RuntimeError("connection reset")


async def test_sql_store_appends_and_reads_in_insertion_order(session_factory) -> None:
    store = SqlDocumentStore(session_factory)

    first = await store.append("timeline", "factoryA", {"phase": "Launch"}, entity_id="phase-1")
    second = await store.append("timeline", "factoryA", {"phase": "Ramp-up"})
    documents = await store.read("timeline", "factoryA")

    assert first == "phase-1"
    assert list(documents) == ["phase-1", second]
    assert documents[second] == {"phase": "Ramp-up"}


async def test_sql_store_write_merges_top_level_fields(session_factory, db_session) -> None:
    store = SqlDocumentStore(session_factory)
    await store.append("personnel", GLOBAL_SCOPE, {"name": "Jane", "notes": "x"}, entity_id="p1")

    await store.write("personnel", GLOBAL_SCOPE, {"p1": {"name": "Jane Doe"}})

    row = db_session.scalar(select(StoredDocument).where(StoredDocument.entity_id == "p1"))
    assert row.payload == {"name": "Jane Doe", "notes": "x"}


async def test_sql_store_reports_missing_documents(session_factory) -> None:
    store = SqlDocumentStore(session_factory)

    with pytest.raises(DocumentNotFoundError):
        await store.read("roles", SHARED_SCOPE)
    with pytest.raises(PersistenceFailure):
        await store.write("personnel", GLOBAL_SCOPE, {"ghost": {"name": "x"}})
    with pytest.raises(PersistenceFailure):
        await store.remove("personnel", GLOBAL_SCOPE, "ghost")


async def test_sql_store_rejects_duplicate_entity_ids(session_factory) -> None:
    store = SqlDocumentStore(session_factory)
    await store.append("personnel", GLOBAL_SCOPE, {"name": "Jane"}, entity_id="p1")

    with pytest.raises(PersistenceFailure):
        await store.append("personnel", GLOBAL_SCOPE, {"name": "Copy"}, entity_id="p1")


async def test_sql_store_remove_deletes_document(session_factory) -> None:
    store = SqlDocumentStore(session_factory)
    await store.append("personnel", GLOBAL_SCOPE, {"name": "Jane"}, entity_id="p1")
    await store.append("personnel", GLOBAL_SCOPE, {"name": "Omar"}, entity_id="p2")

    await store.remove("personnel", GLOBAL_SCOPE, "p1")

    assert list(await store.read("personnel", GLOBAL_SCOPE)) == ["p2"]


async def test_graph_loads_from_sql_store(session_factory) -> None:
    store = SqlDocumentStore(session_factory)
    await store.append("personnel", GLOBAL_SCOPE, {"name": "Jane", "assignedRole": "qm"}, entity_id="p1")
    await store.append("roles", "factoryA", {"title": "Quality Manager"}, entity_id="qm")
    await store.append("roles", SHARED_SCOPE, {"title": "HR Partner"}, entity_id="hr")
    await store.append("roles", "factoryB", {"title": "Plant Manager"}, entity_id="pm")

    graph = await load_graph(PersistenceAdapter(store), "factoryA")

    assert [person.name for person in graph.personnel] == ["Jane"]
    assert set(graph.visible_roles()) == {"qm", "hr"}
    assert graph.timeline == ()
    assert graph.budget == {}


async def test_adapter_groups_paths_into_one_write_per_scope(graph_state, store) -> None:
    adapter = PersistenceAdapter(store)
    name, notes, other = personnel_path("p1", "name"), personnel_path("p1", "notes"), personnel_path("p2", "name")
    graph_state.apply(name, "Jane Doe")
    graph_state.apply(notes, "Mentor")
    graph_state.apply(other, "Omar K")

    await adapter.save(graph_state.graph, name, notes, other)

    assert store.write_calls == [
        (
            "personnel",
            GLOBAL_SCOPE,
            {"p1": {"name": "Jane Doe", "notes": "Mentor"}, "p2": {"name": "Omar K"}},
        )
    ]


async def test_adapter_turns_timeout_into_persistence_failure(graph_state) -> None:
    adapter = PersistenceAdapter(StalledStore(), timeout_seconds=0.05)

    with pytest.raises(PersistenceFailure, match="timed out"):
        await adapter.save(graph_state.graph, personnel_path("p1", "name"))


async def test_adapter_turns_unexpected_errors_into_persistence_failure(graph_state) -> None:
    adapter = PersistenceAdapter(BrokenStore())

    with pytest.raises(PersistenceFailure, match="connection reset"):
        await adapter.save(graph_state.graph, personnel_path("p1", "name"))


async def test_graph_state_snapshots_are_independent(graph_state) -> None:
    snapshot = graph_state.graph

    graph_state.apply(personnel_path("p1", "name"), "Jane Doe")

    assert snapshot.find_person("p1")[1].name == "Jane"
