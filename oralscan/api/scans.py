import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, Response
from pydantic import ValidationError
from sqlmodel import Session

from oralscan.api.deps import get_caller
from oralscan.core.database import get_db
from oralscan.core.errors import InvalidUpload
from oralscan.core.rate_limit import limiter, upload_limit
from oralscan.schemas import ReportDocument, ScanDraft, ScanResponse
from oralscan.services import workflows
from oralscan.services.blob_store import LocalBlobStore, get_blob_store
from oralscan.services.capabilities import Caller
from oralscan.services.report import render_report_html, render_report_pdf

log = logging.getLogger("oralscan.scans")

router = APIRouter(prefix="/scans", tags=["scans"])


def _content_disposition(document: ReportDocument) -> str:
    # Header values are latin-1; the UTF-8 name goes in filename* (RFC 5987)
    return f"attachment; filename=\"{document.filename}\"; filename*=UTF-8''{quote(document.display_filename)}"


def _draft_from_form(**fields) -> ScanDraft:
    try:
        return ScanDraft(**fields)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc") or ()) or "form"
        raise InvalidUpload(f"{field}: {first.get('msg') or 'invalid value'}")


@router.post("", response_model=ScanResponse, status_code=201)
@limiter.limit(upload_limit)
def submit_scan(
    request: Request,
    patient_name: str = Form(...),
    patient_id: str = Form(...),
    region: str = Form(...),
    scan_type: str = Form("RGB"),
    file: UploadFile = File(...),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """Multipart upload: patient fields plus the scan image in 'file' (JPEG or PNG)."""
    # Plain def: the blob write and the commit run on the threadpool, not the event loop
    draft = _draft_from_form(
        patient_name=patient_name, patient_id=patient_id, region=region, scan_type=scan_type
    )
    content = file.file.read()
    log.info("submit_scan: principal=%s filename=%s bytes=%d", caller.principal.id, file.filename, len(content))
    return workflows.submit_scan(caller, db, blob_store, draft, content, file.filename, file.content_type)


@router.get("", response_model=list[ScanResponse])
def fetch_review_feed(
    limit: int | None = Query(None, ge=1, le=500),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return workflows.fetch_review_feed(caller, db, limit=limit)


@router.get("/{scan_id}/report")
def export_report(
    scan_id: int,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """PDF download (Jinja2 + WeasyPrint)."""
    document = workflows.export_report(caller, db, blob_store, scan_id)
    pdf_bytes = render_report_pdf(document)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": _content_disposition(document)},
    )


@router.get("/{scan_id}/report/preview", response_class=HTMLResponse)
def preview_report(
    scan_id: int,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    document = workflows.export_report(caller, db, blob_store, scan_id)
    return HTMLResponse(render_report_html(document))
