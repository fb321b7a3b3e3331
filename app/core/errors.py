"""Error taxonomy for the scheduling engine.

Input errors fail fast. The engine returns business-rule violations and
conflicts as structured validation results; only booking creation raises
them. Store failures are wrapped in DependencyUnavailableError and left to
the caller to retry.
"""


class SchedulingError(Exception):
    code = "SCHEDULING_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(SchedulingError):
    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidTimezoneError(InvalidInputError):
    code = "INVALID_TIMEZONE"

    def __init__(self, timezone: str) -> None:
        super().__init__(f"Invalid timezone: {timezone}")
        self.timezone = timezone


class InvalidTimeFormatError(InvalidInputError):
    code = "INVALID_TIME_FORMAT"

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid date/time format: {value!r}")
        self.value = value


class InvalidSlotRequestError(InvalidInputError):
    code = "INVALID_SLOT_REQUEST"


class NotFoundError(SchedulingError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, identifier: object | None = None) -> None:
        if identifier is not None:
            message = f"{resource} with identifier '{identifier}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)


class HostNotFoundError(NotFoundError):
    def __init__(self, host_id: int) -> None:
        super().__init__("Host", host_id)


class MeetingTypeNotFoundError(NotFoundError):
    def __init__(self, meeting_type_id: int) -> None:
        super().__init__("Meeting type", meeting_type_id)


class BookingRuleViolationError(InvalidInputError):
    """The requested time is free but the booking breaks a meeting-type rule."""

    code = "BOOKING_RULE_VIOLATION"

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class TimeSlotUnavailableError(SchedulingError):
    code = "CONFLICT"
    status_code = 409

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class DependencyUnavailableError(SchedulingError):
    """A data source could not be read. Retryable by the caller."""

    code = "DEPENDENCY_UNAVAILABLE"
    status_code = 503

    def __init__(self, dependency: str, message: str = "") -> None:
        detail = f"{dependency} unavailable"
        if message:
            detail = f"{detail}: {message}"
        super().__init__(detail)
        self.dependency = dependency
