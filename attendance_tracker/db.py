"""MongoDB connection and Beanie document registration."""
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from attendance_tracker.config import Settings
from attendance_tracker.models import Admin, SlotOverride, Timetable, UserAttendance


async def db_startup(settings: Settings) -> AsyncIOMotorClient:
    """Connect to MongoDB and initialize Beanie ODM; the caller owns the client."""
    client = AsyncIOMotorClient(settings.mongodb_url)
    await init_beanie(
        database=client[settings.mongodb_db_name],
        document_models=[
            UserAttendance,
            Timetable,
            SlotOverride,
            Admin,
        ],
    )
    return client


def db_shutdown(client: AsyncIOMotorClient | None) -> None:
    """Close MongoDB connection."""
    if client:
        client.close()
