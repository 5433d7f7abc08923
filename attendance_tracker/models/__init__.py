"""Beanie document models and Pydantic schemas."""
from attendance_tracker.models.admin import Admin
from attendance_tracker.models.attendance import (
    AttendanceRecordOut,
    AttendanceSnapshot,
    AttendanceStatus,
    MarkAttendanceRequest,
    SlotStatusEntry,
    SubjectStats,
    SubjectStatsOut,
    UserAttendance,
)
from attendance_tracker.models.schedule import (
    WEEKDAYS,
    OverrideEntry,
    OverrideFlag,
    OverrideUpdate,
    ScheduleConfig,
    ScheduleSlot,
    ScheduleUpdate,
    SlotOverride,
    Timetable,
)

__all__ = [
    "Admin",
    "AttendanceRecordOut",
    "AttendanceSnapshot",
    "AttendanceStatus",
    "MarkAttendanceRequest",
    "SlotStatusEntry",
    "SubjectStats",
    "SubjectStatsOut",
    "UserAttendance",
    "WEEKDAYS",
    "OverrideEntry",
    "OverrideFlag",
    "OverrideUpdate",
    "ScheduleConfig",
    "ScheduleSlot",
    "ScheduleUpdate",
    "SlotOverride",
    "Timetable",
]
