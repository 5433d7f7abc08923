"""Shared dependencies: service handles, bearer identity, administrator checks."""
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from attendance_tracker.container import Services
from attendance_tracker.errors import AttendanceRejected, RejectionReason
from attendance_tracker.services.admins import email_in_domain
from attendance_tracker.services.identity import VerifiedIdentity, verify_reset_secret

security = HTTPBearer(auto_error=False)

RESET_SECRET_HEADER = "X-Reset-Secret"


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


async def get_identity(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    services: ServicesDep,
) -> VerifiedIdentity:
    if not credentials:
        raise AttendanceRejected(RejectionReason.INVALID_CREDENTIAL, "Missing Authorization header")
    return await services.verifier.verify(credentials.credentials)


async def _check_admin(identity: VerifiedIdentity, services: Services) -> VerifiedIdentity:
    if not email_in_domain(identity.email, services.settings.admin_email_domain):
        raise AttendanceRejected(RejectionReason.NOT_ADMIN, "Unauthorized Domain")
    if not await services.admins.is_admin(identity.email):
        raise AttendanceRejected(RejectionReason.NOT_ADMIN)
    return identity


async def require_admin(
    identity: Annotated[VerifiedIdentity, Depends(get_identity)],
    services: ServicesDep,
) -> VerifiedIdentity:
    return await _check_admin(identity, services)


async def require_reset_authority(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    services: ServicesDep,
) -> str:
    """Admin identity or the pre-shared secret, per RESET_AUTH_MODE. Returns who authorized it."""
    mode = services.settings.reset_auth_mode
    secret = request.headers.get(RESET_SECRET_HEADER, "")
    if mode in ("secret", "either") and secret:
        if verify_reset_secret(secret, services.settings.reset_secret_hash):
            return "shared-secret"
        raise AttendanceRejected(RejectionReason.NOT_ADMIN, "Invalid reset secret")
    if mode == "secret":
        raise AttendanceRejected(RejectionReason.NOT_ADMIN, "Missing reset secret")
    identity = await get_identity(credentials, services)
    await _check_admin(identity, services)
    return identity.email or identity.user_id


# Type aliases for route injection
CurrentIdentity = Annotated[VerifiedIdentity, Depends(get_identity)]
AdminOnly = Annotated[VerifiedIdentity, Depends(require_admin)]
ResetAuthority = Annotated[str, Depends(require_reset_authority)]
