"""Local identity provider accounts (credentials only; roles live in UserProfile)."""
import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from .clock import UTCDateTime, utc_now


def _new_account_id() -> str:
    return uuid.uuid4().hex


class Account(SQLModel, table=True):
    id: str = Field(default_factory=_new_account_id, primary_key=True, max_length=32)
    email: str = Field(unique=True, index=True)
    hashed_password: str
    full_name: str = ""
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
