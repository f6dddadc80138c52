"""Tests for the job runners."""
import json

import pytest

from bulk_transfer_core.jobs import COMPLETED, FAILED, MetricsTracker
from bulk_transfer_worker.orchestrator import JobWorker
from bulk_transfer_worker.tasks import run_job


@pytest.mark.asyncio
async def test_run_job_completes_import(store, settings, tmp_path):
    source = tmp_path / "users.ndjson"
    source.write_text(json.dumps({"email": "a@example.com", "name": "A"}) + "\n")
    job_id = await store.create_import_job("k", "users", str(source))
    await store.claim_job("import", job_id)
    metrics = MetricsTracker()
    assert await run_job("import", job_id, store, metrics=metrics, settings=settings) is True
    assert (await store.get_import_job(job_id)).status == COMPLETED
    assert len(metrics) == 0


@pytest.mark.asyncio
async def test_run_job_logs_failure(store, settings, tmp_path):
    job_id = await store.create_import_job("k", "users", str(tmp_path / "missing.csv"))
    await store.claim_job("import", job_id)
    assert await run_job("import", job_id, store, settings=settings) is False
    assert (await store.get_import_job(job_id)).status == FAILED


@pytest.mark.asyncio
async def test_worker_runs_real_jobs(store, settings, tmp_path):
    source = tmp_path / "users.ndjson"
    source.write_text(json.dumps({"email": "a@example.com", "name": "A"}) + "\n")
    import_id = await store.create_import_job("i", "users", str(source))
    export_id = await store.create_export_job("e", "users", "json")

    worker = JobWorker(store, settings)
    await worker.poll_once()
    for task in worker.tasks:
        await task
    assert (await store.get_import_job(import_id)).status == COMPLETED
    export = await store.get_export_job(export_id)
    assert export.status == COMPLETED
    assert export.download_url == f"/api/v1/exports/{export_id}/download"
