from datetime import datetime

from pydantic import BaseModel, field_validator

from oralscan.models.enums import Region, ScanType

# Compact spellings some capture clients send
_REGION_ALIASES = {
    "upperarch": Region.UPPER_ARCH,
    "lowerarch": Region.LOWER_ARCH,
    "frontal": Region.FRONTAL,
}


class ScanDraft(BaseModel):
    """Operator-supplied fields of a new scan, before the image is stored."""

    patient_name: str
    patient_id: str
    scan_type: ScanType = ScanType.RGB
    region: Region

    @field_validator("patient_name", "patient_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("patient_name")
    @classmethod
    def name_length(cls, v: str) -> str:
        if len(v) > 255:
            raise ValueError("must be at most 255 characters")
        return v

    @field_validator("patient_id")
    @classmethod
    def id_length(cls, v: str) -> str:
        if len(v) > 64:
            raise ValueError("must be at most 64 characters")
        return v

    @field_validator("region", mode="before")
    @classmethod
    def region_alias(cls, v):
        if isinstance(v, str):
            key = v.replace(" ", "").replace("_", "").lower()
            if key in _REGION_ALIASES:
                return _REGION_ALIASES[key]
        return v


class ScanResponse(BaseModel):
    id: int
    patient_name: str
    patient_id: str
    scan_type: str
    region: str
    image_address: str
    uploaded_at: datetime

    model_config = {"from_attributes": True}
