from datetime import date
from enum import Enum

from sqlmodel import Field, SQLModel


class RuleKind(str, Enum):
    RECURRING = "RECURRING"
    DATE_SPECIFIC = "DATE_SPECIFIC"


class AvailabilityRule(SQLModel, table=True):
    __tablename__ = "availability_rules"
    id: int | None = Field(default=None, primary_key=True)
    host_id: int = Field(foreign_key="users.id", index=True)
    kind: RuleKind = Field(index=True)
    day_of_week: int | None = Field(default=None, ge=0, le=6)  # 0 = Sunday, RECURRING only
    specific_date: date | None = Field(default=None, index=True)  # DATE_SPECIFIC only
    start_time: str  # HH:mm, host-local
    end_time: str  # HH:mm, host-local, strictly after start_time
    is_blocked: bool = False
    block_reason: str | None = None

    def applies_to(self, day_of_week: int, specific_date: date) -> bool:
        if self.kind == RuleKind.RECURRING:
            return self.day_of_week == day_of_week
        return self.specific_date == specific_date
