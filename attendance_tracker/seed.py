"""Seed the administrator registry from ADMIN_EMAILS if entries are missing."""
from attendance_tracker.config import Settings
from attendance_tracker.services.admins import MongoAdminDirectory


async def seed_admins(directory: MongoAdminDirectory, settings: Settings) -> int:
    return await directory.ensure(settings.admin_email_list)
