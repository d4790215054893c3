import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from oralscan.core.errors import NotFound, PersistenceError
from oralscan.models import Scan
from oralscan.schemas import ScanDraft

logger = logging.getLogger(__name__)


class ScanRepository:
    """Owns scan rows: id assignment, insert, and recency-ordered listing. No updates, no deletes."""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, draft: ScanDraft, image_address: str, storage_key: str, content_type: str) -> Scan:
        if not image_address:
            raise ValueError("image_address must not be empty")
        scan = Scan(
            patient_name=draft.patient_name,
            patient_id=draft.patient_id,
            scan_type=draft.scan_type.value,
            region=draft.region.value,
            image_address=image_address,
            storage_key=storage_key,
            content_type=content_type,
        )
        try:
            self.db.add(scan)
            self.db.commit()
            self.db.refresh(scan)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("scan insert failed: storage_key=%s", storage_key)
            raise PersistenceError(
                f"Saving the scan record failed ({e.__class__.__name__}). The image was uploaded; please submit again."
            ) from e
        return scan

    def list(self, limit: int | None = None) -> list[Scan]:
        # Newest first; equal timestamps fall back to insertion order (higher id first)
        stmt = select(Scan).order_by(Scan.uploaded_at.desc(), Scan.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return list(self.db.exec(stmt).all())
        except SQLAlchemyError as e:
            logger.exception("scan list failed")
            raise PersistenceError(f"Loading scans failed ({e.__class__.__name__}).") from e

    def get(self, scan_id: int) -> Scan:
        try:
            scan = self.db.get(Scan, scan_id)
        except SQLAlchemyError as e:
            logger.exception("scan lookup failed: id=%s", scan_id)
            raise PersistenceError(f"Loading scan {scan_id} failed ({e.__class__.__name__}).") from e
        if not scan:
            raise NotFound(f"Scan {scan_id} was not found.")
        return scan
