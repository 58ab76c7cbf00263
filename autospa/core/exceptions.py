# autospa/core/exceptions.py
"""
Domain error taxonomy.

Services raise these; the FastAPI exception handlers registered in
autospa.main translate them to JSON responses with the attached status code.
"""
from typing import Any, Dict, Optional


class AutoSpaError(Exception):
    """Base class for all expected, user-facing errors"""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AutoSpaError):
    """Malformed or missing required input"""
    status_code = 400


class InvalidTimeFormat(ValidationError):
    """A clock string could not be parsed as HH:MM"""

    def __init__(self, value: Any):
        super().__init__(f"Invalid time format: {value!r} (expected HH:MM)")
        self.value = value


class TerminalStateError(AutoSpaError):
    """Attempted mutation of a completed, cancelled or no-show appointment"""
    status_code = 400


class InvalidTransitionError(AutoSpaError):
    """Status change not allowed by the appointment state machine"""
    status_code = 400

    def __init__(self, current_status: str, target_status: str):
        super().__init__(f"Cannot transition from {current_status} to {target_status}")
        self.current_status = current_status
        self.target_status = target_status


class NotFoundError(AutoSpaError):
    status_code = 404


class PermissionDeniedError(AutoSpaError):
    status_code = 403


class ScheduleConflict(AutoSpaError):
    """Proposed appointment window overlaps another non-cancelled appointment"""
    status_code = 409

    def __init__(self, message: str = "This time slot conflicts with another appointment",
                 conflicting_id: Optional[str] = None):
        super().__init__(message)
        self.conflicting_id = conflicting_id


class ConfigurationError(AutoSpaError):
    """Stored business configuration is malformed"""
    status_code = 500
