from app.models.db import ConcernTrackingRecord, EffectivenessRatingRecord, RoutineItemRecord

__all__ = [
    "RoutineItemRecord",
    "ConcernTrackingRecord",
    "EffectivenessRatingRecord",
]
