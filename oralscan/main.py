import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# .env from the project root, whatever directory uvicorn was started in
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded

from oralscan.api.auth import router as auth_router
from oralscan.api.scans import router as scans_router
from oralscan.core.config import DEFAULT_SECRET_KEY, settings
from oralscan.core.database import database_ok, init_db
from oralscan.core.errors import OralScanError
from oralscan.core.rate_limit import limiter
from oralscan.logging import setup_logging

setup_logging(level=settings.log_level)
log = logging.getLogger("oralscan")

# StaticFiles checks the directory when mounted, so it has to exist at import
BLOB_DIR = Path(settings.blob_storage_dir)
BLOB_DIR.mkdir(parents=True, exist_ok=True)


def _allowed_origins() -> list[str]:
    origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
    return origins if origins and origins != ["*"] else ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.environment.strip().lower() == "production" and settings.secret_key == DEFAULT_SECRET_KEY:
        raise RuntimeError("SECRET_KEY must be set in production.")
    init_db()
    log.info("oralscan ready: blobs=%s public=%s", BLOB_DIR, settings.blob_public_base_url)
    yield


app = FastAPI(
    title="OralScan API",
    description="Dental scan capture, review feed and report export",
    lifespan=lifespan,
)
app.state.limiter = limiter


def _error_body(request: Request, status_code: int, message: str, **extra) -> JSONResponse:
    body = {"error": message, "status_code": status_code, **extra}
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        body["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(OralScanError)
def oralscan_error_handler(request: Request, exc: OralScanError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    log.log(level, "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return _error_body(request, exc.status_code, exc.message)


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    log.warning("rate limit exceeded: path=%s limit=%s", request.url.path, exc.detail)
    return _error_body(request, 429, "Too many requests. Please wait a minute.")


def _first_validation_message(errors: list[dict]) -> str:
    if not errors:
        return "Invalid request."
    first = errors[0]
    path = [str(p) for p in first.get("loc") or () if p not in ("body", "query", "path")]
    field = path[-1] if path else None
    if first.get("type") == "missing":
        if field == "file":
            return "No scan image was sent. Choose a JPEG or PNG file and submit again."
        return f"{field or 'A required field'} is required."
    msg = first.get("msg") or "Invalid value."
    return f"{field}: {msg}" if field else msg


@app.exception_handler(RequestValidationError)
def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    log.info("request validation failed: %s %s", request.method, request.url.path)
    detail = [{"loc": list(e.get("loc") or ()), "msg": e.get("msg"), "type": e.get("type")} for e in errors]
    return _error_body(request, 422, _first_validation_message(errors), detail=detail)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_body(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled exception on %s %s", request.method, request.url.path)
    return _error_body(request, 500, "Unexpected server error.")


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = uuid.uuid4().hex
    started = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(scans_router)
app.mount("/blobs", StaticFiles(directory=str(BLOB_DIR)), name="blobs")


@app.get("/health")
def health():
    return {"status": "ok", "database": "ok" if database_ok() else "error"}
