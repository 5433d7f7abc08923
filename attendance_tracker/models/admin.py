"""Administrator registry."""
from datetime import datetime

from beanie import Document
from pydantic import Field


class Admin(Document):
    """Registry entry; the document id is the lower-cased email."""

    id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "admins"
