"""Reconciliation of one slot status change against a user's counters.

Marking a slot first reverses whatever the previously logged status
contributed to its subject's counters, then credits the new status to the
requested subject. The previous contribution is taken from the subject
stored with the log entry, never from the live timetable, so an entry
logged before a timetable edit is reversed on the subject it was credited
to. That means a single call may touch two subjects.

Everything here is pure: the caller supplies a snapshot and persists the
returned `Apply` inside its own transaction.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from attendance_tracker.models.attendance import (
    AttendanceSnapshot,
    AttendanceStatus,
    MarkAttendanceRequest,
    SlotStatusEntry,
    SubjectStats,
)

# (present, total) contributed by each status
STATUS_DELTAS: dict[AttendanceStatus, tuple[int, int]] = {
    AttendanceStatus.PENDING: (0, 0),
    AttendanceStatus.PRESENT: (1, 1),
    AttendanceStatus.ABSENT: (0, 1),
}


@dataclass(frozen=True)
class NoOp:
    """The slot already holds the requested status."""


NO_OP = NoOp()


@dataclass(frozen=True)
class ClampEvent:
    """Counters that would have gone out of range, i.e. log/aggregate drift."""
    subject: str
    computed_present: int
    computed_total: int
    stored: SubjectStats


@dataclass(frozen=True)
class Apply:
    date_key: str
    slot_index: int
    slot_entry: Optional[SlotStatusEntry]  # None clears the slot back to pending
    subject_stats: dict[str, SubjectStats]
    clamped: tuple[ClampEvent, ...] = field(default=())


Outcome = Union[NoOp, Apply]


def transition_delta(old: AttendanceStatus, new: AttendanceStatus) -> tuple[int, int]:
    """(Δpresent, Δtotal) of moving a slot from `old` to `new` within one subject."""
    old_present, old_total = STATUS_DELTAS[old]
    new_present, new_total = STATUS_DELTAS[new]
    return new_present - old_present, new_total - old_total


def _clamp(subject: str, present: int, total: int) -> tuple[SubjectStats, Optional[ClampEvent]]:
    safe_total = max(total, 0)
    safe_present = min(max(present, 0), safe_total)
    stats = SubjectStats(present=safe_present, total=safe_total)
    if (safe_present, safe_total) == (present, total):
        return stats, None
    return stats, ClampEvent(subject=subject, computed_present=present, computed_total=total, stored=stats)


def reconcile(snapshot: AttendanceSnapshot, request: MarkAttendanceRequest) -> Outcome:
    old_entry = snapshot.slot_entry(request.date_key, request.slot_index)
    old_status = old_entry.status if old_entry else AttendanceStatus.PENDING
    if old_status == request.status:
        return NO_OP

    deltas: dict[str, list[int]] = {}
    if old_entry is not None:
        present, total = STATUS_DELTAS[old_status]
        deltas[old_entry.subject] = [-present, -total]

    present, total = STATUS_DELTAS[request.status]
    bucket = deltas.setdefault(request.subject, [0, 0])
    bucket[0] += present
    bucket[1] += total

    subject_stats: dict[str, SubjectStats] = {}
    clamped: list[ClampEvent] = []
    for subject, (d_present, d_total) in deltas.items():
        if d_present == 0 and d_total == 0:
            continue
        current = snapshot.stats_for(subject)
        stats, event = _clamp(subject, current.present + d_present, current.total + d_total)
        subject_stats[subject] = stats
        if event:
            clamped.append(event)

    slot_entry = None
    if request.status != AttendanceStatus.PENDING:
        slot_entry = SlotStatusEntry(status=request.status, subject=request.subject)

    return Apply(
        date_key=request.date_key,
        slot_index=request.slot_index,
        slot_entry=slot_entry,
        subject_stats=subject_stats,
        clamped=tuple(clamped),
    )
