"""Pre-transaction checks for a mark-attendance request."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from attendance_tracker.errors import AttendanceRejected, RejectionReason
from attendance_tracker.models.attendance import MarkAttendanceRequest
from attendance_tracker.models.schedule import WEEKDAYS, OverrideEntry, ScheduleConfig


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def local_today(now: datetime, tz: ZoneInfo) -> date:
    return now.astimezone(tz).date()


def check_not_future(day: date, now: datetime, tz: ZoneInfo) -> None:
    if day > local_today(now, tz):
        raise AttendanceRejected(RejectionReason.FUTURE_DATE)


def check_not_cancelled(override: Optional[OverrideEntry], slot_index: int) -> None:
    if override is not None and override.is_cancelled(slot_index):
        raise AttendanceRejected(RejectionReason.SLOT_CANCELLED)


def check_scheduled(schedule: ScheduleConfig, request: MarkAttendanceRequest) -> None:
    weekday = weekday_name(request.date)
    slot = schedule.slot_for(weekday, request.slot_index)
    if slot is None:
        raise AttendanceRejected(
            RejectionReason.INVALID_SLOT,
            f"No lecture is scheduled in slot {request.slot_index} on {weekday}",
        )
    if slot.subject != request.subject:
        raise AttendanceRejected(
            RejectionReason.SUBJECT_MISMATCH,
            f"Slot {request.slot_index} on {weekday} is {slot.subject}, not {request.subject}",
        )
