from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence
from zoneinfo import ZoneInfo

import pytest

from attendance_tracker.errors import AttendanceRejected, RejectionReason, StoreConflict, StoreError
from attendance_tracker.models.attendance import AttendanceSnapshot, SubjectStats
from attendance_tracker.models.schedule import OverrideEntry, OverrideFlag, ScheduleConfig, ScheduleSlot
from attendance_tracker.services.coordinator import MutationCoordinator
from attendance_tracker.services.identity import VerifiedIdentity
from attendance_tracker.services.store import RecordUpdate

IST = ZoneInfo("Asia/Kolkata")
MONDAY = "2024-01-08"


class InMemoryAttendanceStore:
    def __init__(self):
        self.records: dict[str, AttendanceSnapshot] = {}
        self.writes: list[RecordUpdate] = []
        self.reset_batches: list[list[str]] = []
        self.fail_reset_on_batch: Optional[int] = None
        self.fail_with: Optional[Exception] = None
        self._interleave: list[Callable[[AttendanceSnapshot], None]] = []

    def add_user(self, user_id: str, **fields) -> AttendanceSnapshot:
        snap = AttendanceSnapshot(user_id=user_id, **fields)
        self.records[user_id] = snap
        return snap

    def interleave(self, mutate: Callable[[AttendanceSnapshot], None], times: int = 1) -> None:
        """Run `mutate` as a concurrent writer just before the next `times` writes."""
        self._interleave.extend([mutate] * times)

    async def load(self, user_id: str) -> Optional[AttendanceSnapshot]:
        if self.fail_with:
            raise self.fail_with
        snap = self.records.get(user_id)
        return snap.model_copy(deep=True) if snap else None

    async def compare_and_set(self, snapshot: AttendanceSnapshot, update: RecordUpdate) -> None:
        if self._interleave:
            mutate = self._interleave.pop(0)
            current = self.records[snapshot.user_id]
            mutate(current)
            current.revision += 1
        current = self.records[snapshot.user_id]
        if current.revision != snapshot.revision:
            raise StoreConflict(snapshot.user_id)
        for subject, stats in update.subject_stats.items():
            current.attendance[subject] = stats.model_copy()
        day = current.daily_logs.setdefault(update.date_key, {})
        if update.slot_entry is None:
            day.pop(str(update.slot_index), None)
        else:
            day[str(update.slot_index)] = update.slot_entry.model_copy()
        current.last_update = update.last_update
        current.revision += 1
        self.writes.append(update)

    async def list_user_ids(self) -> list[str]:
        return sorted(self.records)

    async def reset_records(self, user_ids: Sequence[str]) -> int:
        if self.fail_reset_on_batch == len(self.reset_batches):
            raise StoreError("bulk write rejected")
        self.reset_batches.append(list(user_ids))
        matched = 0
        for user_id in user_ids:
            snap = self.records.get(user_id)
            if snap is None:
                continue
            snap.attendance = {}
            snap.daily_logs = {}
            snap.revision += 1
            matched += 1
        return matched

    async def list_snapshots(self) -> list[AttendanceSnapshot]:
        return [self.records[k].model_copy(deep=True) for k in sorted(self.records)]


class StaticScheduleSource:
    def __init__(self, schedule: ScheduleConfig, overrides: Optional[dict[str, OverrideEntry]] = None):
        self.schedule = schedule
        self.overrides = overrides or {}

    async def load_schedule(self) -> ScheduleConfig:
        return self.schedule

    async def load_override(self, date_key: str) -> Optional[OverrideEntry]:
        return self.overrides.get(date_key)

    async def save_schedule(self, config: ScheduleConfig) -> ScheduleConfig:
        self.schedule = config
        return config

    async def set_override(self, date_key: str, slot_index: int, flag: OverrideFlag) -> OverrideEntry:
        entry = self.overrides.setdefault(date_key, OverrideEntry(date=date_key))
        entry.slots[str(slot_index)] = flag
        return entry


class StaticVerifier:
    def __init__(self, tokens: dict[str, VerifiedIdentity]):
        self.tokens = tokens

    async def verify(self, token: str) -> VerifiedIdentity:
        identity = self.tokens.get(token)
        if identity is None:
            raise AttendanceRejected(RejectionReason.INVALID_CREDENTIAL)
        return identity


class StaticAdmins:
    def __init__(self, emails: set[str]):
        self.emails = emails

    async def is_admin(self, email: str) -> bool:
        return email.lower() in self.emails


@pytest.fixture
def schedule() -> ScheduleConfig:
    return ScheduleConfig(
        days={
            "Monday": [ScheduleSlot(subject="Maths"), ScheduleSlot(subject="English")],
            "Tuesday": [ScheduleSlot(subject="English")],
        }
    )


@pytest.fixture
def schedules(schedule) -> StaticScheduleSource:
    return StaticScheduleSource(schedule)


@pytest.fixture
def store() -> InMemoryAttendanceStore:
    s = InMemoryAttendanceStore()
    s.add_user("u1", email="student@ves.ac.in")
    return s


@pytest.fixture
def coordinator(store, schedules) -> MutationCoordinator:
    return MutationCoordinator(store, schedules, tz=IST, rate_limit=timedelta(seconds=2), max_attempts=3)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 10, 6, 0, tzinfo=timezone.utc)


def stats(present: int, total: int) -> SubjectStats:
    return SubjectStats(present=present, total=total)
