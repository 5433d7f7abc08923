"""Application configuration using Pydantic Settings."""
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "Attendance Tracker"
    debug: bool = False
    log_level: str = "INFO"

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "attendance"

    # Identity: "firebase" verifies Firebase ID tokens, "jwt" verifies HS256 bearer tokens
    auth_provider: Literal["firebase", "jwt"] = "firebase"
    firebase_credentials_path: str = ""
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # Administrators (semester reset, schedule edits, reports)
    admin_email_domain: str = "ves.ac.in"
    admin_emails: str = ""  # comma-separated, seeded into the registry on startup
    reset_auth_mode: Literal["admin", "secret", "either"] = "admin"
    reset_secret_hash: str = ""  # bcrypt hash of the pre-shared reset secret

    # Marking rules
    timezone: str = "Asia/Kolkata"
    rate_limit_seconds: float = 2.0
    max_transaction_attempts: int = 5
    reset_batch_size: int = 500  # MongoDB bulk writes are chunked to this many operations
    schedule_cache_seconds: float = 60.0

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:5173"

    @model_validator(mode="after")
    def _validate_production_secrets(self):
        if self.auth_provider == "jwt" and not self.debug:
            if self.jwt_secret_key in ("change-me-in-production", ""):
                raise ValueError(
                    "JWT_SECRET_KEY must be set to a strong secret when AUTH_PROVIDER=jwt and DEBUG is not enabled. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
        if self.reset_auth_mode == "secret" and not self.reset_secret_hash:
            raise ValueError("RESET_SECRET_HASH is required when RESET_AUTH_MODE=secret")
        return self

    @property
    def admin_email_list(self) -> list[str]:
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]


settings = Settings()
