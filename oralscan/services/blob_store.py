"""
Blob store for scan images.

LocalBlobStore keeps bytes under BLOB_STORAGE_DIR and hands out public addresses
under BLOB_PUBLIC_BASE_URL, which oralscan/main.py serves as static files. Addresses
that point elsewhere are fetched over plain HTTP.
"""
import logging
import re
from functools import lru_cache
from pathlib import Path
from http.client import HTTPException
from urllib.error import HTTPError, URLError
from urllib.request import urlopen

from oralscan.core.config import settings, upload_max_bytes
from oralscan.core.errors import BlobNotFound, BlobUploadFailed

log = logging.getLogger("oralscan.blobs")

_KEY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,200}$")


class LocalBlobStore:
    def __init__(
        self,
        root: str | Path,
        public_base_url: str,
        fetch_timeout: float = 10.0,
        max_fetch_bytes: int = 10 * 1024 * 1024,
    ):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.fetch_timeout = fetch_timeout
        self.max_fetch_bytes = max_fetch_bytes

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key or "") or ".." in key:
            raise ValueError(f"invalid blob key: {key!r}")
        return self.root / key

    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store bytes under key; returns the key. Existing keys are never overwritten."""
        try:
            path = self._path(key)
            self.root.mkdir(parents=True, exist_ok=True)
            with open(path, "xb") as f:
                f.write(data)
        except (OSError, ValueError) as e:
            log.warning("blob put failed: key=%s error=%s", key, e)
            raise BlobUploadFailed(f"Uploading image {key} to the blob store failed: {e}") from e
        log.info("blob stored: key=%s bytes=%d content_type=%s", key, len(data), content_type)
        return key

    def public_url(self, key: str) -> str:
        self._path(key)
        return f"{self.public_base_url}/{key}"

    def get(self, address: str) -> bytes:
        prefix = self.public_base_url + "/"
        if address and address.startswith(prefix):
            key = address[len(prefix):]
            try:
                return self._path(key).read_bytes()
            except (OSError, ValueError) as e:
                raise BlobNotFound(f"No image stored at {address}.") from e
        if address and address.startswith(("http://", "https://")):
            return self._fetch(address)
        raise BlobNotFound(f"Image address {address!r} cannot be dereferenced.")

    def _fetch(self, address: str) -> bytes:
        """Remote address; at most max_fetch_bytes, and only a complete body."""
        try:
            with urlopen(address, timeout=self.fetch_timeout) as resp:
                header = resp.headers.get("Content-Length")
                declared = int(header) if header is not None else None
                if declared is not None and declared > self.max_fetch_bytes:
                    raise BlobNotFound(f"Image at {address} is larger than {self.max_fetch_bytes} bytes.")
                data = resp.read(self.max_fetch_bytes + 1)
        except HTTPError as e:
            raise BlobNotFound(f"Fetching {address} returned HTTP {e.code}.") from e
        except (URLError, HTTPException, OSError, ValueError) as e:
            raise BlobNotFound(f"Fetching {address} failed: {e!r}") from e
        if len(data) > self.max_fetch_bytes:
            raise BlobNotFound(f"Image at {address} is larger than {self.max_fetch_bytes} bytes.")
        if declared is not None and len(data) != declared:
            raise BlobNotFound(f"Image at {address} was truncated ({len(data)} of {declared} bytes).")
        return data


@lru_cache(maxsize=1)
def get_blob_store() -> LocalBlobStore:
    return LocalBlobStore(
        root=settings.blob_storage_dir,
        public_base_url=settings.blob_public_base_url,
        fetch_timeout=settings.blob_fetch_timeout_seconds,
        max_fetch_bytes=upload_max_bytes(),
    )
