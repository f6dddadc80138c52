"""Tests for the metrics tracker."""
from bulk_transfer_core.jobs import MetricsTracker


def test_lifecycle():
    tracker = MetricsTracker()
    tracker.start(1)
    assert 1 in tracker
    tracker.update(1, processed=200, errors=5)
    metric = tracker.get(1)
    assert metric.processed == 200
    assert metric.error_rate == 2.5

    finished = tracker.finish(1)
    assert finished is metric
    assert 1 not in tracker
    assert len(tracker) == 0


def test_update_untracked_job_is_ignored():
    tracker = MetricsTracker()
    tracker.update(7, processed=10, errors=0)
    assert tracker.get(7) is None
    assert tracker.finish(7) is None


def test_error_rate_without_records():
    tracker = MetricsTracker()
    assert tracker.start(2).error_rate == 0.0
