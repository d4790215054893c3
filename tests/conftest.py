"""Pytest fixtures: test client, in-memory DB, temporary blob store, tokens and sample images."""
import os
import socket
import tempfile
import threading
import uuid
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Must be set before the app (and its Settings) is imported
_BLOB_DIR = tempfile.mkdtemp(prefix="oralscan-test-blobs-")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BLOB_STORAGE_DIR", _BLOB_DIR)
os.environ.setdefault("BLOB_PUBLIC_BASE_URL", "http://testserver/blobs")
# High auth limits so every test can register and log in
os.environ.setdefault("RATE_LIMIT_LOGIN_PER_MINUTE", "1000")
os.environ.setdefault("RATE_LIMIT_REGISTER_PER_MINUTE", "1000")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")

from sqlmodel import Session  # noqa: E402

from oralscan.core.database import engine, init_db  # noqa: E402
from oralscan.main import app  # noqa: E402
from oralscan.services.blob_store import LocalBlobStore  # noqa: E402


def image_bytes(fmt: str = "JPEG", size: tuple[int, int] = (64, 32)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, (180, 40, 40)).save(buf, format=fmt)
    return buf.getvalue()


def unique_email(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}@clinic.example.com"


class ConfirmingIdentity:
    """Identity provider stand-in that confirms (or rejects) every principal."""

    def __init__(self, confirmed: bool = True):
        self.confirmed = confirmed

    def confirm(self, principal) -> bool:
        return self.confirmed


@pytest.fixture(scope="function")
def client():
    """TestClient; the lifespan creates the tables in the in-memory DB."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    init_db()
    with Session(engine) as session:
        yield session


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(root=tmp_path / "blobs", public_base_url="http://testserver/blobs")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return image_bytes("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return image_bytes("PNG")


def _token_for(client: TestClient, email: str, password: str = "secret123") -> str:
    r = client.post("/auth/register", json={"email": email, "password": password, "full_name": "Test User"})
    assert r.status_code == 201, r.text
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, f"Login failed: {r.status_code} {r.text}"
    return r.json()["access_token"]


@pytest.fixture
def capture_headers(client: TestClient) -> dict:
    """Bearer header for a fresh capture operator (email carries the 'technician' marker)."""
    return {"Authorization": f"Bearer {_token_for(client, unique_email('technician'))}"}


@pytest.fixture
def review_headers(client: TestClient) -> dict:
    return {"Authorization": f"Bearer {_token_for(client, unique_email('dr'))}"}


@pytest.fixture
def serve_once():
    """Start a one-shot TCP server that answers any request with the given raw bytes; returns its URL."""
    servers = []

    def start(payload: bytes, path: str = "/scan.jpg") -> str:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        sock.listen(1)
        servers.append(sock)

        def answer():
            try:
                conn, _ = sock.accept()
            except OSError:
                return
            with conn:
                request = b""
                while b"\r\n\r\n" not in request:
                    chunk = conn.recv(4096)
                    if not chunk:
                        break
                    request += chunk
                conn.sendall(payload)

        threading.Thread(target=answer, daemon=True).start()
        return f"http://127.0.0.1:{sock.getsockname()[1]}{path}"

    yield start
    for sock in servers:
        sock.close()
