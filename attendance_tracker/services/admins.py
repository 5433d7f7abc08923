"""Administrator registry lookups."""
from __future__ import annotations

import logging
from typing import Iterable, Protocol

from pymongo.errors import PyMongoError

from attendance_tracker.errors import StoreError
from attendance_tracker.models.admin import Admin

logger = logging.getLogger(__name__)


class AdminDirectory(Protocol):
    async def is_admin(self, email: str) -> bool:
        ...


def email_in_domain(email: str | None, domain: str) -> bool:
    if not email or not domain:
        return False
    return email.lower().endswith("@" + domain.lower().lstrip("@"))


class MongoAdminDirectory:
    async def is_admin(self, email: str) -> bool:
        try:
            return await Admin.get(email.strip().lower()) is not None
        except PyMongoError as e:
            raise StoreError("administrator lookup failed") from e

    async def ensure(self, emails: Iterable[str]) -> int:
        """Insert missing registry entries; returns how many were added."""
        added = 0
        try:
            for email in emails:
                key = email.strip().lower()
                if not key or await Admin.get(key):
                    continue
                await Admin(id=key).insert()
                added += 1
        except PyMongoError as e:
            raise StoreError(f"seeding administrators failed after {added}") from e
        if added:
            logger.info(f"Seeded {added} administrator(s)")
        return added
