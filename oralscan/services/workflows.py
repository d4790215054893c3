"""
The three operations offered to clients. Every call takes the caller explicitly and
checks its role against the capability table before doing anything else.
"""
from sqlmodel import Session

from oralscan.models import Scan
from oralscan.schemas import ReportDocument, ScanDraft
from oralscan.services.capabilities import Caller, Capability, ensure_capability
from oralscan.services.report import generate_report
from oralscan.services.scan_repository import ScanRepository
from oralscan.services.scan_upload import upload_scan


def submit_scan(
    caller: Caller,
    db: Session,
    blob_store,
    draft: ScanDraft,
    content: bytes,
    filename: str | None,
    content_type: str | None,
) -> Scan:
    ensure_capability(caller.role, Capability.SUBMIT_SCAN)
    return upload_scan(db, blob_store, draft, content, filename, content_type)


def fetch_review_feed(caller: Caller, db: Session, limit: int | None = None) -> list[Scan]:
    ensure_capability(caller.role, Capability.FETCH_REVIEW_FEED)
    return ScanRepository(db).list(limit=limit)


def export_report(caller: Caller, db: Session, blob_store, scan_id: int) -> ReportDocument:
    ensure_capability(caller.role, Capability.EXPORT_REPORT)
    scan = ScanRepository(db).get(scan_id)
    return generate_report(scan, blob_store)
