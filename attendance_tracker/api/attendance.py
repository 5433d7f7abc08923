from typing import Literal

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from attendance_tracker.api.deps import AdminOnly, CurrentIdentity, ServicesDep
from attendance_tracker.errors import AttendanceRejected, RejectionReason
from attendance_tracker.models.attendance import (
    AttendanceRecordOut,
    MarkAttendanceRequest,
    SubjectStatsOut,
)
from attendance_tracker.services.report import build_report_frame, render_csv, render_excel

router = APIRouter()


@router.post("/mark")
async def mark_attendance(data: MarkAttendanceRequest, identity: CurrentIdentity, services: ServicesDep):
    """Set the caller's status for one timetable slot on one date."""
    result = await services.coordinator.submit(identity.user_id, data)
    return {"success": True, "changed": result.changed}


@router.get("/me", response_model=AttendanceRecordOut)
async def my_attendance(identity: CurrentIdentity, services: ServicesDep):
    """Caller's per-subject counters and slot log."""
    snapshot = await services.store.load(identity.user_id)
    if snapshot is None:
        raise AttendanceRejected(RejectionReason.USER_NOT_FOUND)
    return AttendanceRecordOut(
        user_id=snapshot.user_id,
        subjects=[
            SubjectStatsOut(subject=name, present=s.present, total=s.total, percentage=s.percentage)
            for name, s in sorted(snapshot.attendance.items())
        ],
        daily_logs=snapshot.daily_logs,
        last_update=snapshot.last_update,
    )


@router.get("/report")
async def download_attendance_report(
    admin: AdminOnly,
    services: ServicesDep,
    format: Literal["csv", "excel"] = "csv",
):
    """Download every user's per-subject attendance."""
    df = build_report_frame(await services.store.list_snapshots())
    if format == "csv":
        return StreamingResponse(
            iter([render_csv(df)]),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=attendance_report.csv"},
        )
    return StreamingResponse(
        render_excel(df),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=attendance_report.xlsx"},
    )
