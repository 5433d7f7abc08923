"""Attendance Tracker - FastAPI entrypoint."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import ServerSelectionTimeoutError

from attendance_tracker.api import admin, attendance, schedule
from attendance_tracker.config import settings
from attendance_tracker.container import build_services
from attendance_tracker.db import db_shutdown, db_startup
from attendance_tracker.errors import AttendanceRejected, RejectionReason, StoreError
from attendance_tracker.seed import seed_admins

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        client = await db_startup(settings)
        services = build_services(settings)
        await seed_admins(services.admins, settings)
    except (ServerSelectionTimeoutError, StoreError) as e:
        logger.error("MongoDB is not running. Start it or point MONGODB_URL at a reachable server")
        raise RuntimeError("MongoDB connection failed.") from e
    app.state.services = services
    yield
    db_shutdown(client)


app = FastAPI(
    title=settings.app_name,
    description="Per-subject class attendance over a weekly timetable",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(AttendanceRejected)
async def attendance_rejected_handler(request: Request, exc: AttendanceRejected):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "reason": exc.reason.value},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store failure on {request.url.path}: {exc}", exc_info=exc)
    rejected = AttendanceRejected(RejectionReason.STORE_UNAVAILABLE)
    return JSONResponse(
        status_code=rejected.status_code,
        content={"error": rejected.message, "reason": rejected.reason.value},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Missing required fields",
            "reason": RejectionReason.MISSING_FIELDS.value,
            "detail": jsonable_encoder(exc.errors()),
        },
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Reset-Secret"],
)

# API routes
app.include_router(attendance.router, prefix="/api/attendance", tags=["Attendance"])
app.include_router(schedule.router, prefix="/api/schedule", tags=["Schedule"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name}
