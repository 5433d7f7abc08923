"""Caller identity: Firebase ID tokens or HS256 bearer JWTs, plus the reset secret."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Protocol

import bcrypt
import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin import exceptions as firebase_exceptions
from jose import JWTError, jwt

from attendance_tracker.config import Settings
from attendance_tracker.errors import AttendanceRejected, RejectionReason

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    user_id: str
    email: Optional[str] = None


class CredentialVerifier(Protocol):
    async def verify(self, token: str) -> VerifiedIdentity:
        ...


class FirebaseVerifier:
    """Verifies Firebase ID tokens with the Admin SDK."""

    APP_NAME = "attendance-tracker"

    def __init__(self, credentials_path: str = ""):
        self._credentials_path = credentials_path
        self._app: Optional[firebase_admin.App] = None

    def _get_app(self) -> firebase_admin.App:
        if self._app is not None:
            return self._app
        try:
            self._app = firebase_admin.get_app(self.APP_NAME)
        except ValueError:
            # Without a path the SDK falls back to application default credentials
            cred = credentials.Certificate(self._credentials_path) if self._credentials_path else None
            self._app = firebase_admin.initialize_app(cred, name=self.APP_NAME)
        return self._app

    async def verify(self, token: str) -> VerifiedIdentity:
        app = self._get_app()
        try:
            decoded = await asyncio.to_thread(auth.verify_id_token, token, app)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            logger.info(f"Rejected Firebase token: {e}")
            raise AttendanceRejected(RejectionReason.INVALID_CREDENTIAL)
        return VerifiedIdentity(user_id=decoded["uid"], email=decoded.get("email"))


class JWTVerifier:
    """Verifies bearer JWTs signed with a shared secret (`sub` is the user id)."""

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self._secret_key = secret_key
        self._algorithm = algorithm

    def create_token(self, user_id: str, email: Optional[str] = None, *, expires_minutes: int = 60) -> str:
        expire = datetime.utcnow() + timedelta(minutes=expires_minutes)
        to_encode = {"sub": user_id, "email": email, "exp": expire, "type": "access"}
        return jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)

    async def verify(self, token: str) -> VerifiedIdentity:
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError:
            raise AttendanceRejected(RejectionReason.INVALID_CREDENTIAL, "Invalid or expired token")
        user_id = payload.get("sub")
        if not user_id or payload.get("type") != "access":
            raise AttendanceRejected(RejectionReason.INVALID_CREDENTIAL)
        return VerifiedIdentity(user_id=user_id, email=payload.get("email"))


def build_verifier(settings: Settings) -> CredentialVerifier:
    if settings.auth_provider == "jwt":
        return JWTVerifier(settings.jwt_secret_key, settings.jwt_algorithm)
    return FirebaseVerifier(settings.firebase_credentials_path)


def hash_reset_secret(secret: str) -> str:
    return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_reset_secret(secret: str, hashed: str) -> bool:
    if not secret or not hashed:
        return False
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.error("RESET_SECRET_HASH is not a valid bcrypt hash")
        return False
