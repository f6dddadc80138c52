"""Job models and metrics. Job creation and status views live in ``jobs.service``."""
from bulk_transfer_core.jobs.models import (
    COMPLETED,
    FAILED,
    PENDING,
    PROCESSING,
    ExportJob,
    ExportJobStatus,
    ImportErrorEntry,
    ImportJob,
    ImportJobStatus,
    JobKind,
)
from bulk_transfer_core.jobs.metrics import JobMetrics, MetricsTracker

__all__ = [
    "COMPLETED",
    "FAILED",
    "PENDING",
    "PROCESSING",
    "ExportJob",
    "ExportJobStatus",
    "ImportErrorEntry",
    "ImportJob",
    "ImportJobStatus",
    "JobKind",
    "JobMetrics",
    "MetricsTracker",
]
