"""Tests for execution, action log and automation persistence (in-memory and SQLite)."""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from db import (
    InMemoryActionLogStore,
    InMemoryExecutionStore,
    SqlAlchemyActionLogStore,
    SqlAlchemyAutomationRepository,
    SqlAlchemyExecutionStore,
    create_db_engine,
    create_session_factory,
    init_db,
)
from factories import NOW, condition_node, delay_node, email_node, end_node
from models import ActionLogEntry, Automation, ExecutionStatus


def _sqlite_session_factory(url: str = "sqlite://"):
    engine = create_db_engine(url)
    init_db(engine)
    return create_session_factory(engine)


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        return InMemoryExecutionStore()
    return SqlAlchemyExecutionStore(_sqlite_session_factory())


@pytest.fixture(params=["memory", "sqlite"])
def log_store(request):
    if request.param == "memory":
        return InMemoryActionLogStore()
    return SqlAlchemyActionLogStore(_sqlite_session_factory())


# ==============================================================================
# Execution store
# ==============================================================================


def test_upsert_creates_paused_row(store):
    row = store.upsert("auto-1", "sub-1", "n2", NOW, {"source": "form"})

    assert row.status is ExecutionStatus.PAUSED
    assert row.current_node_id == "n2"
    assert row.resume_at == NOW
    assert row.context == {"source": "form"}
    assert store.get("auto-1", "sub-1").id == row.id


def test_upsert_twice_keeps_a_single_row(store):
    first = store.upsert("auto-1", "sub-1", "n2", NOW)
    second = store.upsert("auto-1", "sub-1", "n5", NOW + timedelta(hours=1))

    assert second.id == first.id
    row = store.get("auto-1", "sub-1")
    assert row.current_node_id == "n5"
    assert row.resume_at == NOW + timedelta(hours=1)
    assert [r.id for r in store.find_due(NOW + timedelta(days=1), 10)] == [first.id]


def test_upsert_reopens_a_finished_row(store):
    row = store.upsert("auto-1", "sub-1", "n2", NOW)
    store.claim(row.id)
    store.mark_completed(row.id)

    store.upsert("auto-1", "sub-1", "n7", NOW)

    assert store.get("auto-1", "sub-1").status is ExecutionStatus.PAUSED


def test_find_due_filters_by_time_and_status_and_limits(store):
    early = store.upsert("auto-1", "sub-1", "n2", NOW - timedelta(minutes=10))
    later = store.upsert("auto-1", "sub-2", "n2", NOW - timedelta(minutes=5))
    store.upsert("auto-1", "sub-3", "n2", NOW + timedelta(minutes=5))
    claimed = store.upsert("auto-2", "sub-1", "n2", NOW - timedelta(hours=1))
    store.claim(claimed.id)

    assert [r.id for r in store.find_due(NOW, 10)] == [early.id, later.id]
    assert [r.id for r in store.find_due(NOW, 1)] == [early.id]


def test_due_boundary_is_inclusive(store):
    row = store.upsert("auto-1", "sub-1", "n2", NOW)

    assert [r.id for r in store.find_due(NOW, 10)] == [row.id]


def test_claim_succeeds_once(store):
    row = store.upsert("auto-1", "sub-1", "n2", NOW)

    assert store.claim(row.id) is True
    assert store.claim(row.id) is False
    assert store.get("auto-1", "sub-1").status is ExecutionStatus.ACTIVE


def test_claim_unknown_row(store):
    assert store.claim("missing") is False


def test_completion_and_failure_require_active_row(store):
    row = store.upsert("auto-1", "sub-1", "n2", NOW)

    assert store.mark_completed(row.id) is False
    assert store.mark_failed(row.id, "boom") is False

    store.claim(row.id)
    assert store.mark_failed(row.id, "boom") is True

    failed = store.get("auto-1", "sub-1")
    assert failed.status is ExecutionStatus.FAILED
    assert failed.error == "boom"
    assert failed.resume_at is None
    assert store.mark_completed(row.id) is False


def test_mark_completed_clears_resume_time(store):
    row = store.upsert("auto-1", "sub-1", "n2", NOW)
    store.claim(row.id)

    assert store.mark_completed(row.id) is True

    done = store.get("auto-1", "sub-1")
    assert done.status is ExecutionStatus.COMPLETED
    assert done.resume_at is None
    assert store.find_due(NOW + timedelta(days=1), 10) == []


def test_sqlite_returns_aware_utc_datetimes():
    store = SqlAlchemyExecutionStore(_sqlite_session_factory())
    store.upsert("auto-1", "sub-1", "n2", NOW)

    row = store.get("auto-1", "sub-1")

    assert row.resume_at.tzinfo is not None
    assert row.created_at.tzinfo is not None


def _race_for_claim(store, execution_id, contenders=8):
    results = []
    barrier = threading.Barrier(contenders)

    def _worker():
        barrier.wait()
        results.append(store.claim(execution_id))

    threads = [threading.Thread(target=_worker) for _ in range(contenders)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results


def test_concurrent_claims_in_memory_have_one_winner():
    store = InMemoryExecutionStore()
    row = store.upsert("auto-1", "sub-1", "n2", NOW)

    assert sorted(_race_for_claim(store, row.id)) == [False] * 7 + [True]


def test_concurrent_claims_on_sqlite_file_have_one_winner(tmp_path):
    store = SqlAlchemyExecutionStore(_sqlite_session_factory(f"sqlite:///{tmp_path / 'executions.db'}"))
    row = store.upsert("auto-1", "sub-1", "n2", NOW)

    assert sorted(_race_for_claim(store, row.id)) == [False] * 7 + [True]


# ==============================================================================
# Action logs
# ==============================================================================


def _entry(node_id, minutes, subscriber_id="sub-1", status="success"):
    return ActionLogEntry(
        automation_id="auto-1",
        node_id=node_id,
        subscriber_id=subscriber_id,
        status=status,
        input={"params": {}},
        output={"message": node_id},
        executed_at=NOW + timedelta(minutes=minutes),
    )


def test_action_logs_are_listed_newest_first(log_store):
    for node_id, minutes in (("n1", 0), ("n3", 10), ("n2", 5)):
        log_store.log_action(_entry(node_id, minutes))

    assert [e.node_id for e in log_store.list_for_automation("auto-1")] == ["n3", "n2", "n1"]
    assert [e.node_id for e in log_store.list_for_automation("auto-1", limit=2)] == ["n3", "n2"]


def test_action_logs_by_subscriber(log_store):
    log_store.log_action(_entry("n1", 0))
    log_store.log_action(_entry("n1", 1, subscriber_id="sub-2", status="failure"))

    [entry] = log_store.list_for_subscriber("sub-2")
    assert entry.status == "failure"
    assert entry.executed_at == NOW + timedelta(minutes=1)


# ==============================================================================
# Automation repository
# ==============================================================================


def _automation_payload(automation_id="auto-1", user_id="user-1", trigger_type="new_lead"):
    return {
        "id": automation_id,
        "userId": user_id,
        "name": "Nurture",
        "trigger": {"id": "trigger-1", "type": trigger_type, "params": {"listIds": ["l1"]}},
        "nodes": [
            email_node("n1", "n2"),
            delay_node("n2", "n3"),
            condition_node("n3", "n4", "n5"),
            email_node("n4"),
            end_node("n5"),
        ],
        "editorData": {"steps": [{"id": "n1", "parentId": "trigger-1"}]},
    }


@pytest.fixture
def sql_repository():
    return SqlAlchemyAutomationRepository(_sqlite_session_factory())


def test_sql_repository_round_trip(sql_repository):
    automation = Automation.model_validate(_automation_payload())

    assert sql_repository.save(automation) == "auto-1"
    loaded = sql_repository.get("auto-1")

    assert loaded.name == "Nurture"
    assert loaded.trigger.params == {"listIds": ["l1"]}
    assert set(loaded.nodes) == {"n1", "n2", "n3", "n4", "n5"}
    assert loaded.get_node("n3").branches.true == "n4"
    assert loaded.start_node_id() == "n1"
    assert loaded.predecessors("n3") == ["n2"]


def test_sql_repository_save_replaces_existing(sql_repository):
    automation = Automation.model_validate(_automation_payload())
    sql_repository.save(automation)
    sql_repository.save(automation.model_copy(update={"name": "Renamed", "is_enabled": False}))

    loaded = sql_repository.get("auto-1")
    assert loaded.name == "Renamed"
    assert loaded.is_enabled is False


def test_sql_repository_queries(sql_repository):
    sql_repository.save(Automation.model_validate(_automation_payload("a")))
    sql_repository.save(Automation.model_validate(_automation_payload("b", trigger_type="click")))
    sql_repository.save(Automation.model_validate(_automation_payload("c", user_id="user-2")))

    assert sorted(a.id for a in sql_repository.list_for_user("user-1")) == ["a", "b"]
    assert sorted(a.id for a in sql_repository.find_by_trigger("new_lead")) == ["a", "c"]

    sql_repository.delete("a")
    assert sql_repository.get("a") is None
    assert sql_repository.get("missing") is None
