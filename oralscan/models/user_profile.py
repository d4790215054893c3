from datetime import datetime

from sqlmodel import Field, SQLModel

from .clock import UTCDateTime, utc_now


class UserProfile(SQLModel, table=True):
    __tablename__ = "user_profiles"
    # Principal id from the identity provider; primary key so a principal can never hold two roles
    id: str = Field(primary_key=True, max_length=64)
    email: str = Field(index=True)
    role: str  # "capture" | "review"
    full_name: str = ""
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
