"""Rejection taxonomy shared by the marking core and the HTTP layer."""
from __future__ import annotations

from enum import Enum


class RejectionReason(str, Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    NOT_ADMIN = "not_admin"
    MISSING_FIELDS = "missing_fields"
    FUTURE_DATE = "future_date"
    SLOT_CANCELLED = "slot_cancelled"
    INVALID_SLOT = "invalid_slot"
    SUBJECT_MISMATCH = "subject_mismatch"
    RATE_LIMITED = "rate_limited"
    USER_NOT_FOUND = "user_not_found"
    TRANSIENT_CONFLICT = "transient_conflict"
    STORE_UNAVAILABLE = "store_unavailable"


HTTP_STATUS_BY_REASON: dict[RejectionReason, int] = {
    RejectionReason.INVALID_CREDENTIAL: 401,
    RejectionReason.NOT_ADMIN: 403,
    RejectionReason.MISSING_FIELDS: 400,
    RejectionReason.FUTURE_DATE: 400,
    RejectionReason.SLOT_CANCELLED: 400,
    RejectionReason.INVALID_SLOT: 400,
    RejectionReason.SUBJECT_MISMATCH: 400,
    RejectionReason.RATE_LIMITED: 429,
    RejectionReason.USER_NOT_FOUND: 404,
    RejectionReason.TRANSIENT_CONFLICT: 409,
    RejectionReason.STORE_UNAVAILABLE: 503,
}

DEFAULT_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.INVALID_CREDENTIAL: "Invalid Token",
    RejectionReason.NOT_ADMIN: "Not an Admin",
    RejectionReason.MISSING_FIELDS: "Missing required fields",
    RejectionReason.FUTURE_DATE: "Cannot mark attendance for a future date",
    RejectionReason.SLOT_CANCELLED: "This lecture was cancelled",
    RejectionReason.INVALID_SLOT: "No lecture is scheduled in this slot",
    RejectionReason.SUBJECT_MISMATCH: "Subject does not match the timetable for this slot",
    RejectionReason.RATE_LIMITED: "Too many requests, please wait a moment",
    RejectionReason.USER_NOT_FOUND: "User does not exist",
    RejectionReason.TRANSIENT_CONFLICT: "Attendance was updated concurrently, please retry",
    RejectionReason.STORE_UNAVAILABLE: "Attendance service is temporarily unavailable",
}


class AttendanceRejected(Exception):
    """A request was refused; `message` is safe to show to the caller."""

    def __init__(self, reason: RejectionReason, message: str | None = None):
        self.reason = reason
        self.message = message or DEFAULT_MESSAGES[reason]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_REASON[self.reason]


class StoreConflict(Exception):
    """The record changed between read and write; the transaction must be re-run."""


class StoreError(Exception):
    """The attendance store failed for a reason other than a write conflict."""


class BulkResetFailed(Exception):
    """A semester reset stopped partway; committed batches stand."""

    def __init__(self, updated: int, batches: int, total_batches: int):
        self.updated = updated
        self.batches = batches
        self.total_batches = total_batches
        super().__init__(f"Reset stopped after {batches}/{total_batches} batches ({updated} users updated)")
