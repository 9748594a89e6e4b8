from app.tracking.ledger import EffectivenessLedger, current_entry, ensure_can_rate
from app.tracking.lifecycle import TrackingLifecycle, TrackingStore, review_concern, tracking_state
from app.tracking.progress import compute_progress, tracking_as_of
from app.tracking.scores import compare, parse_improvement_status, score_change_label

__all__ = [
    "EffectivenessLedger",
    "current_entry",
    "ensure_can_rate",
    "TrackingLifecycle",
    "TrackingStore",
    "review_concern",
    "tracking_state",
    "compute_progress",
    "tracking_as_of",
    "compare",
    "parse_improvement_status",
    "score_change_label",
]
