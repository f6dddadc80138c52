"""Terminal transitions shared by the import and export pipelines."""
from bulk_transfer_core.jobs.models import FAILED, JobKind


async def mark_job_failed(store, kind: JobKind, job_id: int, log) -> bool:
    """Move a job to failed while its original error is being handled.

    A failure of the transition itself is logged and reported as False so
    that the caller re-raises the first cause.
    """
    try:
        return await store.finish_job(kind, job_id, FAILED)
    except Exception as e:
        log.error("job_fail_transition_failed", kind=kind, error=str(e))
        return False
