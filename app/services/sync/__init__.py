"""Feed reconciliation: orchestrator and per-record reconciler."""
from app.services.sync.orchestrator import SyncOrchestrator, SyncOutcome, RecordFailure
from app.services.sync.reconciler import MatchReconciler, PersistenceError, ReconcileResult

__all__ = [
    "SyncOrchestrator",
    "SyncOutcome",
    "RecordFailure",
    "MatchReconciler",
    "PersistenceError",
    "ReconcileResult",
]
