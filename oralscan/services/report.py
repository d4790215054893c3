"""
Scan report export: Scan -> ReportDocument -> Jinja2 HTML -> WeasyPrint PDF.

Documents are rebuilt from the record on every call. A missing or undecodable
image never fails the export; the document carries a placeholder instead.
"""
import logging
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, TemplateError
from PIL import Image

from oralscan.core.config import settings
from oralscan.core.errors import BlobNotFound, ReportGenerationFailed
from oralscan.models import Scan
from oralscan.schemas import IMAGE_UNAVAILABLE, ReportDocument, ReportField, ReportImage

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
_ENV = Environment(loader=FileSystemLoader(str(_TEMPLATES_DIR)), autoescape=True)

REPORT_TITLE = "Dental Scan Report"
MM_PER_PX = 25.4 / 96  # CSS reference pixel


def fit_within(width: float, height: float, max_width: float, max_height: float) -> tuple[float, float]:
    """
    Scale (width, height) down into the box, keeping aspect ratio. Never scales up.
    Width is fitted first; if the height is still too tall it is fitted second.
    """
    if width > max_width:
        ratio = max_width / width
        width, height = max_width, height * ratio
    if height > max_height:
        ratio = max_height / height
        width, height = width * ratio, max_height
    return width, height


def format_upload_date(dt: datetime) -> str:
    """'October 19, 2026 14:05 UTC'. Naive datetimes are stored as UTC."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return f"{dt:%B} {dt.day}, {dt.year} {dt:%H:%M} UTC"


def _decode_image(data: bytes) -> ReportImage:
    with Image.open(BytesIO(data)) as img:
        img.load()
        fmt = img.format or "JPEG"
        px_w, px_h = img.size
    mime = Image.MIME.get(fmt, "image/jpeg")
    width_mm, height_mm = fit_within(
        px_w * MM_PER_PX,
        px_h * MM_PER_PX,
        settings.report_image_max_width_mm,
        settings.report_image_max_height_mm,
    )
    return ReportImage(
        data=data,
        mime_type=mime,
        pixel_width=px_w,
        pixel_height=px_h,
        width_mm=round(width_mm, 2),
        height_mm=round(height_mm, 2),
    )


def _fetch_image(scan: Scan, blob_store) -> ReportImage | None:
    try:
        return _decode_image(blob_store.get(scan.image_address))
    except (BlobNotFound, OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning("report image unavailable: scan=%s address=%s error=%s", scan.id, scan.image_address, e)
        return None


def generate_report(scan: Scan, blob_store, now: datetime | None = None) -> ReportDocument:
    try:
        patient_fields = [
            ReportField(label="Name", value=str(scan.patient_name)),
            ReportField(label="ID", value=str(scan.patient_id)),
        ]
        scan_fields = [
            ReportField(label="Type", value=str(scan.scan_type)),
            ReportField(label="Region", value=str(scan.region)),
            ReportField(label="Upload Date", value=format_upload_date(scan.uploaded_at)),
        ]
    except (AttributeError, TypeError, ValueError) as e:
        logger.exception("report metadata rendering failed: scan=%s", getattr(scan, "id", None))
        raise ReportGenerationFailed(f"Report for scan {getattr(scan, 'id', '?')} could not be built: {e}") from e

    image = _fetch_image(scan, blob_store)
    return ReportDocument(
        brand=settings.report_brand,
        title=REPORT_TITLE,
        scan_id=scan.id or 0,
        patient_id=str(scan.patient_id),
        generated_at=now or datetime.now(timezone.utc),
        patient_fields=patient_fields,
        scan_fields=scan_fields,
        image=image,
        image_placeholder=None if image else IMAGE_UNAVAILABLE,
    )


def render_report_html(document: ReportDocument) -> str:
    try:
        template = _ENV.get_template("scan_report.html")
        return template.render(doc=document, generated_at=format_upload_date(document.generated_at))
    except TemplateError as e:
        logger.exception("report template failed: scan=%s", document.scan_id)
        raise ReportGenerationFailed(f"Report for scan {document.scan_id} could not be rendered: {e}") from e


def render_report_pdf(document: ReportDocument) -> bytes:
    """Renders the HTML and converts it with WeasyPrint (imported lazily; it needs system libraries)."""
    html_str = render_report_html(document)
    try:
        from weasyprint import HTML

        return HTML(string=html_str, base_url=str(_TEMPLATES_DIR)).write_pdf()
    except Exception as e:
        logger.exception("report PDF conversion failed: scan=%s", document.scan_id)
        raise ReportGenerationFailed(f"PDF for scan {document.scan_id} could not be created: {e!s}") from e
