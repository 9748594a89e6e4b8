"""
Error taxonomy for routine items and effectiveness tracking.

Routes translate these into HTTP responses; library callers catch them directly.
"""

from typing import Optional


class TrackingError(Exception):
    """Base class for every error raised by the tracking core."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RoutineValidationError(TrackingError):
    """A routine item is malformed for its kind. Fix the fields and save again."""

    status_code = 422

    def __init__(self, errors: list[dict[str, str]]):
        self.errors = errors
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        super().__init__(f"Invalid routine item: {summary}")


class NotCompletedError(TrackingError):
    """Rating was attempted before the tracking cycle completed."""

    status_code = 409

    def __init__(
        self,
        concern: str,
        weeks_completed: Optional[int] = None,
        total_weeks: Optional[int] = None,
        paused: bool = False,
    ):
        self.concern = concern
        self.paused = paused
        if paused:
            message = f"Tracking for '{concern}' is paused"
        elif weeks_completed is not None and total_weeks is not None:
            message = (
                f"Tracking for '{concern}' is not complete yet "
                f"(week {weeks_completed}/{total_weeks})"
            )
        else:
            message = f"Tracking for '{concern}' is not complete yet"
        super().__init__(message)


class StaleStateError(TrackingError):
    """Fresh state no longer matches what the caller saw."""

    status_code = 409

    def __init__(self, concern: str):
        self.concern = concern
        super().__init__(
            f"Tracking for '{concern}' changed since it was loaded, please refresh and try again"
        )


class RoutineItemNotFoundError(TrackingError):
    status_code = 404

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Routine item {item_id} not found")


class UnknownConcernError(TrackingError):
    status_code = 404

    def __init__(self, item_id: int, concern: str):
        self.item_id = item_id
        self.concern = concern
        super().__init__(f"Routine item {item_id} does not track '{concern}'")
