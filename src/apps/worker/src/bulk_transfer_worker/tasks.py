"""Job runners dispatched by the worker."""
import time

import structlog

from bulk_transfer_core.export import process_export_job
from bulk_transfer_core.ingest import process_import_job
from bulk_transfer_core.jobs import JobKind, MetricsTracker
from bulk_transfer_core.settings import Settings
from bulk_transfer_core.util import error_type_of

logger = structlog.get_logger()

RUNNERS = {
    "import": process_import_job,
    "export": process_export_job,
}


async def run_job(
    kind: JobKind,
    job_id: int,
    store,
    metrics: MetricsTracker | None = None,
    settings: Settings | None = None,
) -> bool:
    """Run one claimed job. Failures are logged here, never raised."""
    runner = RUNNERS[kind]
    log = logger.bind(job_id=job_id, kind=kind)
    start = time.monotonic()
    try:
        await runner(job_id, store, metrics=metrics, settings=settings)
    except Exception as e:
        log.error(
            "job_failed",
            error=str(e),
            error_type=error_type_of(e),
            duration_s=round(time.monotonic() - start, 2),
        )
        return False
    log.info("job_finished", duration_s=round(time.monotonic() - start, 2))
    return True
