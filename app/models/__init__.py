"""SQLAlchemy ORM models."""

from app.models.api_key import ApiKeyRecord
from app.models.base import Base
from app.models.user import UserRecord

__all__ = ["Base", "UserRecord", "ApiKeyRecord"]
