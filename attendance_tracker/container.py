from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from zoneinfo import ZoneInfo

from attendance_tracker.config import Settings
from attendance_tracker.services.admins import AdminDirectory, MongoAdminDirectory
from attendance_tracker.services.coordinator import MutationCoordinator
from attendance_tracker.services.identity import CredentialVerifier, build_verifier
from attendance_tracker.services.store import AttendanceStore, MongoAttendanceStore
from attendance_tracker.services.timetable import MongoScheduleSource


@dataclass(frozen=True)
class Services:
    settings: Settings
    store: AttendanceStore
    schedules: MongoScheduleSource
    verifier: CredentialVerifier
    admins: AdminDirectory
    coordinator: MutationCoordinator


def build_services(settings: Settings) -> Services:
    store = MongoAttendanceStore()
    schedules = MongoScheduleSource(cache_seconds=settings.schedule_cache_seconds)
    coordinator = MutationCoordinator(
        store,
        schedules,
        tz=ZoneInfo(settings.timezone),
        rate_limit=timedelta(seconds=settings.rate_limit_seconds),
        max_attempts=settings.max_transaction_attempts,
    )
    return Services(
        settings=settings,
        store=store,
        schedules=schedules,
        verifier=build_verifier(settings),
        admins=MongoAdminDirectory(),
        coordinator=coordinator,
    )
