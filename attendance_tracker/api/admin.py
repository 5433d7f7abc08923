"""Administrative bulk operations."""
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from attendance_tracker.api.deps import ResetAuthority, ServicesDep
from attendance_tracker.errors import BulkResetFailed
from attendance_tracker.services.reset import reset_all_users

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/reset-semester")
async def reset_semester(authorized_by: ResetAuthority, services: ServicesDep):
    """Empty every user's counters and daily logs."""
    logger.info(f"Semester reset requested by {authorized_by}")
    try:
        summary = await reset_all_users(services.store, batch_size=services.settings.reset_batch_size)
    except BulkResetFailed as e:
        return JSONResponse(
            status_code=500,
            content={
                "error": "Action Failed",
                "updated": e.updated,
                "batches": e.batches,
                "total_batches": e.total_batches,
            },
        )

    if summary.updated == 0:
        return {"success": True, "updated": 0, "batches": 0, "message": "No users to update"}
    return {"success": True, "updated": summary.updated, "batches": summary.batches}
