"""Mark-attendance orchestration: validate, then read-reconcile-write atomically.

The store's compare-and-set write is the only mutual exclusion. Two calls
for the same user race on the record revision; the loser re-reads and
reconciles against the winner's result (which may turn it into a no-op or
a rate-limit rejection). Nothing is merged here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from attendance_tracker.errors import AttendanceRejected, RejectionReason, StoreConflict, StoreError
from attendance_tracker.models.attendance import AttendanceSnapshot, MarkAttendanceRequest
from attendance_tracker.services.reconcile import Apply, NoOp, reconcile
from attendance_tracker.services.store import AttendanceStore, RecordUpdate
from attendance_tracker.services.timetable import ScheduleSource
from attendance_tracker.services.validation import (
    check_not_cancelled,
    check_not_future,
    check_scheduled,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkResult:
    changed: bool
    attempts: int


class MutationCoordinator:
    def __init__(
        self,
        store: AttendanceStore,
        schedules: ScheduleSource,
        *,
        tz: ZoneInfo,
        rate_limit: timedelta = timedelta(seconds=2),
        max_attempts: int = 5,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._schedules = schedules
        self._tz = tz
        self._rate_limit = rate_limit
        self._max_attempts = max_attempts

    async def submit(self, user_id: str, request: MarkAttendanceRequest, *, now: datetime | None = None) -> MarkResult:
        """Apply `request` to `user_id`'s record or raise AttendanceRejected."""
        now = now or datetime.now(timezone.utc)
        try:
            await self._validate(request, now)
            return await self._transact(user_id, request, now)
        except StoreError:
            logger.exception(f"Attendance store failure for user {user_id} ({request.date_key} slot {request.slot_index})")
            raise AttendanceRejected(RejectionReason.STORE_UNAVAILABLE)

    async def _validate(self, request: MarkAttendanceRequest, now: datetime) -> None:
        check_not_future(request.date, now, self._tz)
        override = await self._schedules.load_override(request.date_key)
        check_not_cancelled(override, request.slot_index)
        schedule = await self._schedules.load_schedule()
        check_scheduled(schedule, request)

    def _check_rate_limit(self, snapshot: AttendanceSnapshot, now: datetime) -> None:
        if snapshot.last_update is None:
            return
        if now - snapshot.last_update < self._rate_limit:
            raise AttendanceRejected(RejectionReason.RATE_LIMITED)

    async def _transact(self, user_id: str, request: MarkAttendanceRequest, now: datetime) -> MarkResult:
        for attempt in range(1, self._max_attempts + 1):
            snapshot = await self._store.load(user_id)
            if snapshot is None:
                raise AttendanceRejected(RejectionReason.USER_NOT_FOUND)
            # Must be decided on the same snapshot the write is guarded by
            self._check_rate_limit(snapshot, now)

            outcome = reconcile(snapshot, request)
            if isinstance(outcome, NoOp):
                return MarkResult(changed=False, attempts=attempt)

            try:
                await self._store.compare_and_set(snapshot, self._to_update(outcome, now))
            except StoreConflict:
                logger.info(f"Write conflict for user {user_id}, attempt {attempt}/{self._max_attempts}")
                continue

            self._report_clamps(user_id, outcome)
            return MarkResult(changed=True, attempts=attempt)

        logger.warning(f"Giving up on user {user_id} after {self._max_attempts} conflicting attempts")
        raise AttendanceRejected(RejectionReason.TRANSIENT_CONFLICT)

    @staticmethod
    def _to_update(outcome: Apply, now: datetime) -> RecordUpdate:
        return RecordUpdate(
            date_key=outcome.date_key,
            slot_index=outcome.slot_index,
            slot_entry=outcome.slot_entry,
            subject_stats=outcome.subject_stats,
            last_update=now,
        )

    @staticmethod
    def _report_clamps(user_id: str, outcome: Apply) -> None:
        for event in outcome.clamped:
            logger.warning(
                f"Attendance drift for user {user_id}, subject {event.subject}: "
                f"computed present={event.computed_present} total={event.computed_total}, "
                f"stored present={event.stored.present} total={event.stored.total}"
            )
