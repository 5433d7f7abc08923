"""Per-user attendance record: subject counters and the per-day slot log."""
from datetime import date as date_type, datetime, timezone
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AttendanceStatus(str, Enum):
    PENDING = "pending"  # never stored; a missing slot entry means pending
    PRESENT = "present"
    ABSENT = "absent"


class SlotStatusEntry(BaseModel):
    """Status logged for one (date, slot), with the subject it was credited to."""
    status: AttendanceStatus
    subject: str


class SubjectStats(BaseModel):
    present: int = 0
    total: int = 0

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return round(self.present * 100.0 / self.total, 2)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Motor hands back naive datetimes that are already UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserAttendance(Document):
    """One document per user, keyed by the identity provider's uid."""

    id: str
    email: Optional[str] = None
    attendance: dict[str, SubjectStats] = Field(default_factory=dict)
    # date (YYYY-MM-DD) -> slot index (as string) -> entry
    daily_logs: dict[str, dict[str, SlotStatusEntry]] = Field(default_factory=dict)
    last_update: Optional[datetime] = None
    revision: int = 0  # bumped on every write; compare-and-set guard

    class Settings:
        name = "users"
        use_state_management = True


class AttendanceSnapshot(BaseModel):
    """Consistent view of a user's record as read at `revision`."""

    user_id: str
    email: Optional[str] = None
    attendance: dict[str, SubjectStats] = Field(default_factory=dict)
    daily_logs: dict[str, dict[str, SlotStatusEntry]] = Field(default_factory=dict)
    last_update: Optional[datetime] = None
    revision: int = 0

    @field_validator("last_update")
    @classmethod
    def _normalize_last_update(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @classmethod
    def from_document(cls, doc: UserAttendance) -> "AttendanceSnapshot":
        return cls(
            user_id=doc.id,
            email=doc.email,
            attendance=doc.attendance,
            daily_logs=doc.daily_logs,
            last_update=doc.last_update,
            revision=doc.revision,
        )

    def slot_entry(self, date_key: str, slot_index: int) -> Optional[SlotStatusEntry]:
        return self.daily_logs.get(date_key, {}).get(str(slot_index))

    def stats_for(self, subject: str) -> SubjectStats:
        return self.attendance.get(subject) or SubjectStats()


class MarkAttendanceRequest(BaseModel):
    """Body of a mark-attendance call."""
    model_config = ConfigDict(populate_by_name=True)

    subject: str = Field(min_length=1)
    status: AttendanceStatus
    date: date_type
    slot_index: int = Field(alias="slotIndex")

    @field_validator("subject")
    @classmethod
    def _validate_subject(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("subject must not be blank")
        # Subjects become MongoDB field names under `attendance.`
        if "." in value or value.startswith("$"):
            raise ValueError("subject must not contain '.' or start with '$'")
        return value

    @property
    def date_key(self) -> str:
        return self.date.isoformat()


class SubjectStatsOut(BaseModel):
    subject: str
    present: int
    total: int
    percentage: float


class AttendanceRecordOut(BaseModel):
    user_id: str
    subjects: list[SubjectStatsOut]
    daily_logs: dict[str, dict[str, SlotStatusEntry]]
    last_update: Optional[datetime] = None
