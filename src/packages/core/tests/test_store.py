"""Tests for the SQLite store."""
import pytest

from bulk_transfer_core.jobs import COMPLETED, FAILED, PENDING, PROCESSING
from bulk_transfer_core.records import ArticleRecord, CommentRecord, UserRecord
from bulk_transfer_core.store import Predicate
from bulk_transfer_core.util import ConstraintViolation, ForeignKeyViolation


@pytest.mark.asyncio
async def test_import_job_idempotency(store):
    first = await store.create_import_job("key-1", "users", "/tmp/a.json")
    again = await store.create_import_job("key-1", "users", "/tmp/b.json")
    other = await store.create_import_job("key-2", "users", "/tmp/c.json")
    assert first == again
    assert other != first
    job = await store.get_import_job(first)
    assert job.file_path == "/tmp/a.json"
    assert job.status == PENDING
    with store.get_conn() as conn:
        assert conn.execute("SELECT COUNT(*) FROM import_jobs").fetchone()[0] == 2


@pytest.mark.asyncio
async def test_export_job_idempotency(store):
    first = await store.create_export_job("key-1", "articles", "json", {"status": "published"}, ["id"])
    again = await store.create_export_job("key-1", "users", "ndjson")
    assert first == again
    job = await store.get_export_job(first)
    assert job.resource == "articles"
    assert job.filters == {"status": "published"}
    assert job.fields == ["id"]


@pytest.mark.asyncio
async def test_claim_is_exclusive(store):
    job_id = await store.create_import_job("k", "users", "/tmp/a.json")
    assert await store.claim_job("import", job_id) is True
    assert await store.claim_job("import", job_id) is False
    job = await store.get_import_job(job_id)
    assert job.status == PROCESSING
    assert job.started_at is not None


@pytest.mark.asyncio
async def test_status_never_regresses(store):
    job_id = await store.create_export_job("k", "users", "ndjson")
    assert await store.claim_job("export", job_id)
    assert await store.finish_job("export", job_id, COMPLETED, total_records=3)
    assert await store.finish_job("export", job_id, FAILED) is False
    assert await store.claim_job("export", job_id) is False
    job = await store.get_export_job(job_id)
    assert job.status == COMPLETED
    assert job.total_records == 3
    assert job.completed_at is not None


@pytest.mark.asyncio
async def test_finish_rejects_unknown_columns(store):
    job_id = await store.create_import_job("k", "users", None)
    with pytest.raises(ValueError):
        await store.finish_job("import", job_id, FAILED, download_url="/x")
    with pytest.raises(ValueError):
        await store.finish_job("import", job_id, PROCESSING)


@pytest.mark.asyncio
async def test_pending_jobs_oldest_first(store):
    ids = [await store.create_import_job(f"k{i}", "users", None) for i in range(4)]
    await store.claim_job("import", ids[0])
    assert await store.list_pending_jobs("import", 2) == ids[1:3]
    assert await store.list_pending_jobs("import", 0) == []
    assert await store.list_pending_jobs("export", 5) == []


@pytest.mark.asyncio
async def test_counts_and_errors(store):
    job_id = await store.create_import_job("k", "users", None)
    await store.increment_import_counts(job_id, 5, 1)
    await store.increment_import_counts(job_id, 2, 0)
    for i in range(3):
        await store.add_import_error(job_id, i, {"n": i}, f"bad {i}", "VALIDATION_ERROR")
    job = await store.get_import_job(job_id)
    assert (job.success_count, job.error_count) == (7, 1)
    errors = await store.list_import_errors(job_id, limit=2)
    assert [e.record_index for e in errors] == [2, 1]
    assert errors[0].record_data == {"n": 2}


@pytest.mark.asyncio
async def test_user_upsert_by_email(store):
    first = await store.upsert_user(UserRecord(email="a@b.co", name="A"), "u-1")
    second = await store.upsert_user(UserRecord(email="a@b.co", name="Renamed", active=False), None)
    assert first == second
    rows = await store.scan("users", [], 0, 10)
    assert len(rows) == 1
    assert rows[0]["name"] == "Renamed"
    assert rows[0]["active"] is False
    assert rows[0]["external_id"] == "u-1"
    assert rows[0]["role"] == "reader"


@pytest.mark.asyncio
async def test_external_id_conflict(store):
    await store.upsert_user(UserRecord(email="a@b.co", name="A"), "u-1")
    with pytest.raises(ConstraintViolation):
        await store.upsert_user(UserRecord(email="other@b.co", name="B"), "u-1")


@pytest.mark.asyncio
async def test_article_requires_author(store):
    record = ArticleRecord(slug="s", title="T", body="B", author_id=99)
    with pytest.raises(ForeignKeyViolation):
        await store.upsert_article(record, 99, None)


@pytest.mark.asyncio
async def test_comment_upsert_on_external_id(store):
    user_id = await store.upsert_user(UserRecord(email="a@b.co", name="A"), None)
    article_id = await store.upsert_article(
        ArticleRecord(slug="s", title="T", body="B", author_id=user_id), user_id, None
    )
    record = CommentRecord(article_id=article_id, user_id=user_id, body="first")
    a = await store.upsert_comment(record, article_id, user_id, "c-1")
    b = await store.upsert_comment(record.model_copy(update={"body": "edited"}), article_id, user_id, "c-1")
    c = await store.upsert_comment(record, article_id, user_id, None)
    assert a == b
    assert c != a
    rows = await store.scan("comments", [], 0, 10)
    assert [r["body"] for r in rows] == ["edited", "first"]


@pytest.mark.asyncio
async def test_scan_keyset_and_predicates(store):
    for i in range(5):
        await store.upsert_user(UserRecord(email=f"u{i}@b.co", name=f"U{i}", active=i % 2 == 0), None)
    page = await store.scan("users", [], 0, 2)
    assert [r["email"] for r in page] == ["u0@b.co", "u1@b.co"]
    page = await store.scan("users", [], page[-1]["id"], 2)
    assert [r["email"] for r in page] == ["u2@b.co", "u3@b.co"]
    active = await store.scan("users", [Predicate("active", "=", 1)], 0, 10)
    assert [r["email"] for r in active] == ["u0@b.co", "u2@b.co", "u4@b.co"]


@pytest.mark.asyncio
async def test_scan_rejects_unknown_column(store):
    with pytest.raises(ValueError):
        await store.scan("users", [Predicate("email; DROP TABLE users", "=", 1)], 0, 10)
