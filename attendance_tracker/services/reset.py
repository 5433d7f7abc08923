"""Start-of-semester reset: empty every user's counters and logs."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, TypeVar

from attendance_tracker.errors import BulkResetFailed, StoreError
from attendance_tracker.services.store import AttendanceStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ResetSummary:
    updated: int
    batches: int


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


async def reset_all_users(store: AttendanceStore, *, batch_size: int = 500) -> ResetSummary:
    """Reset in independent batches of at most `batch_size` writes.

    A failing batch stops the run; batches already committed stay committed
    and are reported through BulkResetFailed.
    """
    user_ids = await store.list_user_ids()
    if not user_ids:
        return ResetSummary(updated=0, batches=0)

    chunks = chunked(user_ids, batch_size)
    updated = 0
    for i, chunk in enumerate(chunks):
        try:
            matched = await store.reset_records(chunk)
        except StoreError as e:
            logger.error(f"Reset batch {i + 1}/{len(chunks)} failed after {updated} updates: {e}")
            raise BulkResetFailed(updated=updated, batches=i, total_batches=len(chunks)) from e
        updated += matched
        logger.info(f"Committed batch {i + 1}/{len(chunks)} ({matched} updates)")
    return ResetSummary(updated=updated, batches=len(chunks))
