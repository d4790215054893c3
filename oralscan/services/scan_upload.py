"""Capture workflow: validate, upload the image, then insert the record that references it."""
import logging
import secrets
import time

from sqlmodel import Session

from oralscan.core.config import ACCEPTED_IMAGE_TYPES, settings, upload_max_bytes
from oralscan.core.errors import InvalidUpload, UnsupportedMediaType, UploadTooLarge
from oralscan.models import Scan
from oralscan.schemas import ScanDraft
from oralscan.services.scan_repository import ScanRepository

logger = logging.getLogger(__name__)

EXTENSIONS_BY_TYPE = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/jpg": (".jpg", ".jpeg"),
    "image/png": (".png",),
}


def normalize_content_type(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def storage_key_for(filename: str | None, content_type: str) -> str:
    """Millisecond prefix + random suffix + extension; unique across concurrent uploads."""
    allowed = EXTENSIONS_BY_TYPE[content_type]
    ext = ""
    if filename and "." in filename:
        ext = "." + filename.rsplit(".", 1)[-1].lower()
    if ext not in allowed:
        ext = allowed[0]
    return f"{int(time.time() * 1000)}-{secrets.token_hex(8)}{ext}"


def validate_upload(content: bytes, content_type: str) -> None:
    if content_type not in ACCEPTED_IMAGE_TYPES:
        raise UnsupportedMediaType(
            f"Scan image must be JPEG or PNG (got {content_type or 'no content type'})."
        )
    if not content:
        raise InvalidUpload("Scan image file is empty.")
    if len(content) > upload_max_bytes():
        raise UploadTooLarge(f"Scan image is larger than {settings.upload_max_mb} MB.")


def upload_scan(
    db: Session,
    blob_store,
    draft: ScanDraft,
    content: bytes,
    filename: str | None,
    content_type: str | None,
) -> Scan:
    content_type = normalize_content_type(content_type)
    validate_upload(content, content_type)

    key = storage_key_for(filename, content_type)
    t0 = time.perf_counter()
    blob_store.put(key, content, content_type)
    address = blob_store.public_url(key)
    # From here on a failure leaves an unreferenced blob behind; that is harmless
    scan = ScanRepository(db).insert(draft, image_address=address, storage_key=key, content_type=content_type)
    logger.info(
        "scan uploaded: id=%s key=%s bytes=%d duration_ms=%d",
        scan.id,
        key,
        len(content),
        int((time.perf_counter() - t0) * 1000),
    )
    return scan
