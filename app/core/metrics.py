"""
Prometheus metrics for otg-sports-api.

This module defines all Prometheus metrics used for monitoring and observability.

Metrics exposed:
- Sync cycle outcomes and per-record reconciliation counters
- Goalserve request success/failure counters
- Tenant gateway rejections by reason
- Last-used update drops
- Scheduler status gauges
"""
from prometheus_client import Counter, Gauge, Histogram

# Sync Metrics
sync_cycles_total = Counter(
    "sync_cycles_total",
    "Total sync cycles by result",
    ["sport", "result"]
)

sync_records_total = Counter(
    "sync_records_total",
    "Records processed by sync cycles",
    ["sport", "outcome"]
)

sync_cycle_duration_seconds = Histogram(
    "sync_cycle_duration_seconds",
    "Duration of a full sync cycle in seconds",
    ["sport"]
)

# External API Metrics
goalserve_requests_total = Counter(
    "goalserve_requests_total",
    "Total Goalserve feed requests",
    ["sport", "result"]
)

# Gateway Metrics
gateway_rejections_total = Counter(
    "gateway_rejections_total",
    "Requests rejected by the tenant gateway",
    ["reason"]
)

last_used_updates_dropped_total = Counter(
    "last_used_updates_dropped_total",
    "API key last-used updates dropped because the worker queue was full"
)

# Scheduler Metrics
scheduler_running = Gauge(
    "scheduler_running",
    "Whether the sync scheduler is running (1=running, 0=stopped)"
)

scheduler_jobs_total = Gauge(
    "scheduler_jobs_total",
    "Total number of scheduled jobs"
)


def record_sync_outcome(sport: str, inserted: int, updated: int, failed: int, rejected: int) -> None:
    """Add one cycle's per-record counts."""
    sync_records_total.labels(sport=sport, outcome="inserted").inc(inserted)
    sync_records_total.labels(sport=sport, outcome="updated").inc(updated)
    sync_records_total.labels(sport=sport, outcome="failed").inc(failed)
    sync_records_total.labels(sport=sport, outcome="rejected").inc(rejected)


def record_goalserve_request(sport: str, success: bool) -> None:
    goalserve_requests_total.labels(sport=sport, result="success" if success else "failure").inc()


def record_gateway_rejection(reason: str) -> None:
    gateway_rejections_total.labels(reason=reason).inc()


def update_scheduler_metrics(scheduler) -> None:
    """
    Update scheduler metrics.

    Args:
        scheduler: SyncScheduler instance, or None when not running
    """
    if scheduler is not None and scheduler.running and scheduler.scheduler:
        scheduler_running.set(1)
        scheduler_jobs_total.set(len(scheduler.scheduler.get_jobs()))
    else:
        scheduler_running.set(0)
        scheduler_jobs_total.set(0)
