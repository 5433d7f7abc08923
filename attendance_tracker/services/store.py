"""User attendance record store: consistent reads and compare-and-set writes."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Sequence

from pymongo import UpdateOne
from pymongo.errors import PyMongoError

from attendance_tracker.errors import StoreConflict, StoreError
from attendance_tracker.models.attendance import (
    AttendanceSnapshot,
    SlotStatusEntry,
    SubjectStats,
    UserAttendance,
)


@dataclass(frozen=True)
class RecordUpdate:
    """The only fields a mark-attendance write touches."""
    date_key: str
    slot_index: int
    slot_entry: Optional[SlotStatusEntry]
    subject_stats: dict[str, SubjectStats]
    last_update: datetime


class AttendanceStore(Protocol):
    async def load(self, user_id: str) -> Optional[AttendanceSnapshot]:
        ...

    async def compare_and_set(self, snapshot: AttendanceSnapshot, update: RecordUpdate) -> None:
        """Persist `update` only if the record is still at `snapshot.revision`.

        Raises StoreConflict otherwise.
        """
        ...

    async def list_user_ids(self) -> list[str]:
        ...

    async def reset_records(self, user_ids: Sequence[str]) -> int:
        """Empty counters and logs for `user_ids` in a single bulk write."""
        ...

    async def list_snapshots(self) -> list[AttendanceSnapshot]:
        ...


def build_update_document(update: RecordUpdate) -> dict:
    sets: dict = {
        f"attendance.{subject}": stats.model_dump()
        for subject, stats in update.subject_stats.items()
    }
    slot_path = f"daily_logs.{update.date_key}.{update.slot_index}"
    doc: dict = {"$inc": {"revision": 1}}
    if update.slot_entry is None:
        doc["$unset"] = {slot_path: ""}
    else:
        sets[slot_path] = update.slot_entry.model_dump(mode="json")
    sets["last_update"] = update.last_update
    doc["$set"] = sets
    return doc


def revision_filter(user_id: str, revision: int) -> dict:
    if revision == 0:
        # Records provisioned before revisions existed have no field at all
        return {"_id": user_id, "revision": {"$in": [0, None]}}
    return {"_id": user_id, "revision": revision}


class MongoAttendanceStore:
    """Beanie/Motor-backed store. Construct after `init_beanie`."""

    async def load(self, user_id: str) -> Optional[AttendanceSnapshot]:
        try:
            doc = await UserAttendance.get(user_id)
        except PyMongoError as e:
            raise StoreError(f"load failed for {user_id}") from e
        if doc is None:
            return None
        return AttendanceSnapshot.from_document(doc)

    async def compare_and_set(self, snapshot: AttendanceSnapshot, update: RecordUpdate) -> None:
        collection = UserAttendance.get_motor_collection()
        try:
            result = await collection.update_one(
                revision_filter(snapshot.user_id, snapshot.revision),
                build_update_document(update),
            )
        except PyMongoError as e:
            raise StoreError(f"write failed for {snapshot.user_id}") from e
        if result.matched_count == 0:
            raise StoreConflict(f"{snapshot.user_id} changed since revision {snapshot.revision}")

    async def list_user_ids(self) -> list[str]:
        collection = UserAttendance.get_motor_collection()
        try:
            return [doc["_id"] async for doc in collection.find({}, {"_id": 1})]
        except PyMongoError as e:
            raise StoreError("listing users failed") from e

    async def reset_records(self, user_ids: Sequence[str]) -> int:
        if not user_ids:
            return 0
        collection = UserAttendance.get_motor_collection()
        operations = [
            UpdateOne(
                {"_id": user_id},
                {"$set": {"attendance": {}, "daily_logs": {}}, "$inc": {"revision": 1}},
            )
            for user_id in user_ids
        ]
        try:
            result = await collection.bulk_write(operations, ordered=False)
        except PyMongoError as e:
            raise StoreError("bulk reset write failed") from e
        return result.matched_count

    async def list_snapshots(self) -> list[AttendanceSnapshot]:
        try:
            docs = await UserAttendance.find_all().sort("_id").to_list()
        except PyMongoError as e:
            raise StoreError("listing records failed") from e
        return [AttendanceSnapshot.from_document(doc) for doc in docs]
