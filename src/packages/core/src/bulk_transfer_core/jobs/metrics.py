"""In-memory throughput and error-rate tracking for running jobs."""
import time
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger()


@dataclass
class JobMetrics:
    """Counters for one job."""

    job_id: int
    started: float = field(default_factory=time.monotonic)
    processed: int = 0
    errors: int = 0

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    @property
    def error_rate(self) -> float:
        """Errors as a percentage of processed records."""
        return round(self.errors / self.processed * 100, 2) if self.processed else 0.0

    @property
    def rows_per_sec(self) -> int:
        elapsed = self.elapsed
        return round(self.processed / elapsed) if elapsed > 0 else 0


class MetricsTracker:
    """Per-job metrics, owned by whoever runs the jobs.

    Entries live from ``start`` to ``finish``; nothing is kept after a job settles.
    """

    def __init__(self):
        self._metrics: dict[int, JobMetrics] = {}

    def __contains__(self, job_id: int) -> bool:
        return job_id in self._metrics

    def __len__(self) -> int:
        return len(self._metrics)

    def start(self, job_id: int) -> JobMetrics:
        """Begin tracking a job, resetting any previous entry."""
        metric = JobMetrics(job_id)
        self._metrics[job_id] = metric
        return metric

    def update(self, job_id: int, processed: int, errors: int) -> None:
        """Set cumulative counts for a tracked job."""
        metric = self._metrics.get(job_id)
        if metric is not None:
            metric.processed = processed
            metric.errors = errors

    def get(self, job_id: int) -> JobMetrics | None:
        return self._metrics.get(job_id)

    def finish(self, job_id: int) -> JobMetrics | None:
        """Stop tracking a job and log its summary."""
        metric = self._metrics.pop(job_id, None)
        if metric is None:
            return None
        logger.info(
            "job_metrics",
            job_id=job_id,
            duration_s=round(metric.elapsed, 1),
            rows_per_sec=metric.rows_per_sec,
            total_rows=metric.processed,
            errors=metric.errors,
            error_rate=metric.error_rate,
        )
        return metric
