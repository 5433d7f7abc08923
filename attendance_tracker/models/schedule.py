"""Weekly timetable and per-date lecture cancellations."""
import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, ConfigDict, Field

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class ScheduleSlot(BaseModel):
    subject: str
    start_time: Optional[str] = None  # "HH:MM", informational
    end_time: Optional[str] = None


class ScheduleConfig(BaseModel):
    """Weekday name -> slots in positional order."""
    days: dict[str, list[ScheduleSlot]] = Field(default_factory=dict)

    def slot_for(self, weekday: str, slot_index: int) -> Optional[ScheduleSlot]:
        slots = self.days.get(weekday) or []
        if slot_index < 0 or slot_index >= len(slots):
            return None
        return slots[slot_index]


class Timetable(Document):
    """Single-doc timetable (id='schedule')."""

    id: str = "schedule"
    days: dict[str, list[ScheduleSlot]] = Field(default_factory=dict)
    updated_at: datetime.datetime = Field(default_factory=datetime.datetime.utcnow)

    class Settings:
        name = "config"
        use_state_management = True

    def to_config(self) -> ScheduleConfig:
        return ScheduleConfig(days=self.days)


class OverrideFlag(BaseModel):
    cancelled: bool = False
    reason: Optional[str] = None


class SlotOverride(Document):
    """Ad-hoc cancellations for one date, keyed by slot index (as string)."""

    date: Indexed(str, unique=True)  # YYYY-MM-DD
    slots: dict[str, OverrideFlag] = Field(default_factory=dict)
    updated_at: datetime.datetime = Field(default_factory=datetime.datetime.utcnow)

    class Settings:
        name = "overrides"
        use_state_management = True


class OverrideEntry(BaseModel):
    date: str
    slots: dict[str, OverrideFlag] = Field(default_factory=dict)

    def is_cancelled(self, slot_index: int) -> bool:
        flag = self.slots.get(str(slot_index))
        return bool(flag and flag.cancelled)


class ScheduleUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    days: dict[str, list[ScheduleSlot]] = Field(default_factory=dict)


class OverrideUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    cancelled: bool
    reason: Optional[str] = None
