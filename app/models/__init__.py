from app.models.user import User, UserPublic
from app.models.meeting_type import MeetingType, MeetingTypeRules
from app.models.availability_rule import AvailabilityRule, RuleKind
from app.models.booking import ACTIVE_STATUSES, Booking, BookingPublic, BookingStatus

__all__ = [
    "User",
    "UserPublic",
    "MeetingType",
    "MeetingTypeRules",
    "AvailabilityRule",
    "RuleKind",
    "Booking",
    "BookingPublic",
    "BookingStatus",
    "ACTIVE_STATUSES",
]
