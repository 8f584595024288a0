from typing import Any, Dict, Optional
from fastapi import status


class SchedulingError(Exception):
    """Base class for scheduler precondition failures.

    Every subclass carries an HTTP status and a stable ``code`` so the API
    layer can render it without knowing the concrete type.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code = "SCHEDULING_ERROR"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        payload = {"detail": self.message, "code": self.code}
        payload.update({k: v for k, v in self.context.items() if v is not None})
        return payload


class TripNotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "TRIP_NOT_FOUND"

    def __init__(self, trip_id: int):
        super().__init__("Trip not found", trip_id=trip_id)


class InvalidTripBoundsError(SchedulingError):
    code = "INVALID_TRIP_BOUNDS"


class InvalidWindowError(SchedulingError):
    code = "INVALID_WINDOW"


class DuplicateWindowError(SchedulingError):
    code = "DUPLICATE_WINDOW"


class InvalidPickError(SchedulingError):
    code = "INVALID_PICK"


class InvalidOptionError(SchedulingError):
    code = "INVALID_OPTION"


class LeaderOnlyError(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "LEADER_ONLY"

    def __init__(self, action: str):
        super().__init__(f"Only the trip leader can {action}", action=action)


class StateError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = "STAGE_BLOCKED"

    def __init__(self, message: str, current_status: Optional[str] = None, required_status: Optional[str] = None, **context: Any):
        super().__init__(message, current_status=current_status, required_status=required_status, **context)
        self.current_status = current_status
        self.required_status = required_status


class ConflictError(StateError):
    """Lost a compare-and-set race; re-read the trip before retrying."""

    code = "STATUS_CONFLICT"

    def __init__(self, message: str, expected_status: str, current_status: Optional[str] = None):
        super().__init__(message, current_status=current_status, expected_status=expected_status)
        self.expected_status = expected_status


class EmptyBallotError(StateError):
    code = "EMPTY_BALLOT"
