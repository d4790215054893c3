from datetime import datetime

from sqlmodel import Field, SQLModel

from .clock import UTCDateTime, utc_now


class Scan(SQLModel, table=True):
    __tablename__ = "scans"
    id: int | None = Field(default=None, primary_key=True)
    patient_name: str = Field(max_length=255)
    patient_id: str = Field(max_length=64, index=True)
    scan_type: str = "RGB"
    region: str  # "Frontal" | "Upper Arch" | "Lower Arch"
    # Public blob store address; written once on insert, never updated
    image_address: str
    storage_key: str = Field(unique=True)
    content_type: str
    uploaded_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
