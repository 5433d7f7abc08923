"""Timetable and cancellation lookups, with an in-process schedule cache."""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Optional, Protocol

from pymongo.errors import DuplicateKeyError, PyMongoError

from attendance_tracker.errors import StoreError
from attendance_tracker.models.schedule import (
    OverrideEntry,
    OverrideFlag,
    ScheduleConfig,
    SlotOverride,
    Timetable,
)

logger = logging.getLogger(__name__)


class ScheduleSource(Protocol):
    async def load_schedule(self) -> ScheduleConfig:
        ...

    async def load_override(self, date_key: str) -> Optional[OverrideEntry]:
        ...


class MongoScheduleSource:
    """Reads the single timetable document and per-date overrides."""

    def __init__(self, *, cache_seconds: float = 60.0, clock=time.monotonic):
        self._cache_seconds = cache_seconds
        self._clock = clock
        self._cached: Optional[ScheduleConfig] = None
        self._cached_at = 0.0

    def invalidate(self) -> None:
        self._cached = None

    async def load_schedule(self) -> ScheduleConfig:
        now = self._clock()
        if self._cached is not None and now - self._cached_at < self._cache_seconds:
            return self._cached
        try:
            doc = await Timetable.get("schedule")
        except PyMongoError as e:
            raise StoreError("loading timetable failed") from e
        if doc is None:
            logger.warning("No timetable configured; every slot will be rejected")
            config = ScheduleConfig()
        else:
            config = doc.to_config()
        self._cached = config
        self._cached_at = now
        return config

    async def load_override(self, date_key: str) -> Optional[OverrideEntry]:
        try:
            doc = await SlotOverride.find_one(SlotOverride.date == date_key)
        except PyMongoError as e:
            raise StoreError(f"loading overrides for {date_key} failed") from e
        if doc is None:
            return None
        return OverrideEntry(date=doc.date, slots=doc.slots)

    async def save_schedule(self, config: ScheduleConfig) -> ScheduleConfig:
        days = {day: [slot.model_dump() for slot in slots] for day, slots in config.days.items()}
        try:
            await Timetable.get_motor_collection().update_one(
                {"_id": "schedule"},
                {"$set": {"days": days, "updated_at": datetime.utcnow()}},
                upsert=True,
            )
        except PyMongoError as e:
            raise StoreError("saving timetable failed") from e
        self.invalidate()
        logger.info(f"Timetable updated ({sum(len(s) for s in config.days.values())} slots)")
        return ScheduleConfig(days=config.days)

    async def set_override(self, date_key: str, slot_index: int, flag: OverrideFlag) -> OverrideEntry:
        update = {
            "$set": {f"slots.{slot_index}": flag.model_dump(), "updated_at": datetime.utcnow()},
        }
        collection = SlotOverride.get_motor_collection()
        try:
            try:
                await collection.update_one({"date": date_key}, update, upsert=True)
            except DuplicateKeyError:
                # Another first write for this date created the document
                await collection.update_one({"date": date_key}, update)
            doc = await SlotOverride.find_one(SlotOverride.date == date_key)
        except PyMongoError as e:
            raise StoreError(f"saving override for {date_key} failed") from e
        if doc is None:
            raise StoreError(f"override for {date_key} vanished after write")
        logger.info(f"Override set for {date_key} slot {slot_index} (cancelled={flag.cancelled})")
        return OverrideEntry(date=doc.date, slots=doc.slots)
