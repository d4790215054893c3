import base64
from datetime import datetime

from pydantic import BaseModel

IMAGE_UNAVAILABLE = "Image unavailable"


class ReportField(BaseModel):
    label: str
    value: str


class ReportImage(BaseModel):
    data: bytes
    mime_type: str
    pixel_width: int
    pixel_height: int
    width_mm: float
    height_mm: float

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"


class ReportDocument(BaseModel):
    """Point-in-time export of one scan. Never stored; rebuilt on every request."""

    brand: str
    title: str
    scan_id: int
    patient_id: str
    generated_at: datetime
    patient_fields: list[ReportField]
    scan_fields: list[ReportField]
    image: ReportImage | None = None
    image_placeholder: str | None = None

    @property
    def text_fields(self) -> dict[str, str]:
        return {f.label: f.value for f in self.patient_fields + self.scan_fields}

    @property
    def filename(self) -> str:
        """ASCII-only download name, safe for a latin-1 Content-Disposition header."""
        safe = "".join(c if c.isascii() and (c.isalnum() or c in "-_") else "_" for c in self.patient_id)
        return f"scan-report-{safe or self.scan_id}.pdf"

    @property
    def display_filename(self) -> str:
        """Download name keeping the patient id as typed (minus path and quote characters)."""
        kept = "".join(c for c in self.patient_id if c.isprintable() and c not in "/\\\"")
        return f"scan-report-{kept or self.scan_id}.pdf"
