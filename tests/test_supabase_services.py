"""Tests for the Supabase-backed passage catalog and session store."""
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from speaking_practice.domain.errors import CatalogUnavailable, PersistenceFailure, SessionNotFound
from speaking_practice.domain.models import SessionRecord
from speaking_practice.services.passage_service import PassageCatalog, passage_from_row
from speaking_practice.services.session_store import SessionStore, generate_session_id


PASSAGE_ROW = {
    "id": "passage-1",
    "title": "The Lighthouse Keeper",
    "content": "Every night the keeper climbed the stairs.",
    "time_limit": 300,
    "created_at": "2025-01-02T10:00:00Z",
    "questions": [
        {"id": "q2", "question_text": "Why did he stay?", "recommended_answer": "Duty.", "order": 2},
        {"id": "q1", "question_text": "What did he do?", "recommended_answer": None, "order": 1},
    ],
}


def query_chain(data=None, error=None):
    """Supabase client whose every builder call returns the same query object"""
    client = MagicMock()
    query = client.table.return_value
    for method in ("select", "eq", "limit", "order", "upsert"):
        getattr(query, method).return_value = query
    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = SimpleNamespace(data=data)
    return client, query


def test_passage_from_row_orders_questions():
    passage = passage_from_row(PASSAGE_ROW)

    assert passage.question_texts == ["What did he do?", "Why did he stay?"]
    assert passage.recommended_answers == ["", "Duty."]
    assert passage.created_at == datetime(2025, 1, 2, 10, 0, tzinfo=timezone.utc)
    assert passage.usage_count is None


def test_passage_from_row_reads_session_count():
    row = dict(PASSAGE_ROW, speaking_sessions=[{"count": 4}])

    assert passage_from_row(row, sessions_key="speaking_sessions").usage_count == 4
    assert passage_from_row(dict(PASSAGE_ROW, speaking_sessions=[]), sessions_key="speaking_sessions").usage_count == 0


@pytest.mark.asyncio
async def test_get_passage_returns_domain_model():
    client, query = query_chain(data=[PASSAGE_ROW])

    passage = await PassageCatalog(client=client).get_passage("passage-1")

    client.table.assert_called_with("passages")
    query.select.assert_called_with("*, questions(*)")
    query.eq.assert_called_with("id", "passage-1")
    assert passage.title == "The Lighthouse Keeper"
    assert [q.id for q in passage.ordered_questions] == ["q1", "q2"]


@pytest.mark.asyncio
async def test_get_passage_missing_returns_none():
    client, _ = query_chain(data=[])

    assert await PassageCatalog(client=client).get_passage("missing") is None


@pytest.mark.asyncio
async def test_get_passage_storage_error_is_catalog_unavailable():
    client, _ = query_chain(error=RuntimeError("connection refused"))

    with pytest.raises(CatalogUnavailable):
        await PassageCatalog(client=client).get_passage("passage-1")


@pytest.mark.asyncio
async def test_list_passages_newest_first_with_counts():
    rows = [dict(PASSAGE_ROW, speaking_sessions=[{"count": 2}]),
            dict(PASSAGE_ROW, id="passage-0", speaking_sessions=[])]
    client, query = query_chain(data=rows)

    passages = await PassageCatalog(client=client).list_passages()

    query.select.assert_called_with("*, questions(*), speaking_sessions(count)")
    query.order.assert_called_with("created_at", desc=True)
    assert [(p.id, p.usage_count) for p in passages] == [("passage-1", 2), ("passage-0", 0)]


def test_generate_session_id_format():
    first, second = generate_session_id(), generate_session_id()

    assert first.startswith("session_")
    assert len(first.split("_")) == 3
    assert first != second


@pytest.mark.asyncio
async def test_create_session_upserts_row(evaluation):
    client, query = query_chain(data=[{"id": "session_1_abc"}])
    record = SessionRecord(
        id="session_1_abc",
        user_id="user_demo",
        passage_id="passage-1",
        full_transcript="USER: hi",
        duration=42,
        evaluation=evaluation,
        questions_asked="A|||B",
    )

    session_id = await SessionStore(client=client).create_session(record)

    assert session_id == "session_1_abc"
    client.table.assert_called_with("speaking_sessions")
    row = query.upsert.call_args.args[0]
    assert query.upsert.call_args.kwargs == {"on_conflict": "id", "ignore_duplicates": True}
    assert row["overall_score"] == 77
    assert row["comprehension_feedback"] == "Understood the main idea."
    assert row["questions_asked"] == "A|||B"
    assert row["duration"] == 42
    assert "created_at" in row


@pytest.mark.asyncio
async def test_create_session_generates_missing_id(evaluation):
    client, _ = query_chain(data=[{}])
    record = SessionRecord(id="", user_id="u", passage_id="p", full_transcript="t",
                           duration=31, evaluation=evaluation)

    session_id = await SessionStore(client=client).create_session(record)

    assert session_id.startswith("session_")
    assert record.id == session_id


@pytest.mark.asyncio
async def test_create_session_failure_is_persistence_failure(evaluation):
    client, _ = query_chain(error=RuntimeError("insert rejected"))
    record = SessionRecord(id="s", user_id="u", passage_id="p", full_transcript="t",
                           duration=31, evaluation=evaluation)

    with pytest.raises(PersistenceFailure):
        await SessionStore(client=client).create_session(record)


@pytest.mark.asyncio
async def test_create_session_without_returned_row_fails(evaluation):
    client, _ = query_chain(data=[])
    record = SessionRecord(id="s", user_id="u", passage_id="p", full_transcript="t",
                           duration=31, evaluation=evaluation)

    with pytest.raises(PersistenceFailure):
        await SessionStore(client=client).create_session(record)


@pytest.mark.asyncio
async def test_get_session_sorts_embedded_questions():
    row = {"id": "s1", "passages": dict(PASSAGE_ROW)}
    client, query = query_chain(data=[row])

    session = await SessionStore(client=client).get_session("s1")

    query.select.assert_called_with("*, passages(*, questions(*))")
    assert [q["id"] for q in session["passages"]["questions"]] == ["q1", "q2"]


@pytest.mark.asyncio
async def test_get_session_missing_raises():
    client, _ = query_chain(data=[])

    with pytest.raises(SessionNotFound):
        await SessionStore(client=client).get_session("nope")


@pytest.mark.asyncio
async def test_create_session_with_already_stored_id_succeeds(evaluation):
    client, query = query_chain()
    query.execute.side_effect = [SimpleNamespace(data=[]), SimpleNamespace(data=[{"id": "s"}])]
    record = SessionRecord(id="s", user_id="u", passage_id="p", full_transcript="t",
                           duration=31, evaluation=evaluation)

    session_id = await SessionStore(client=client).create_session(record)

    assert session_id == "s"
    query.eq.assert_called_with("id", "s")
