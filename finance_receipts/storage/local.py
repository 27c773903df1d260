"""Filesystem bucket with HMAC-signed expiring URLs.

Stands in for the hosted bucket during development and tests. Signed URLs
point at the API's ``/files`` route, which checks them with ``verify``.
"""

import hashlib
import hmac
import time
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from urllib.parse import urlencode

from finance_receipts.errors import StorageError
from finance_receipts.utils.logger import get_logger

logger = get_logger(__name__)


class LocalStorage:
    """Object storage kept under a local directory.

    Args:
        root: Directory holding the buckets.
        bucket: Bucket name, a subdirectory of ``root``.
        base_url: Public URL prefix the signed URLs are built on.
        secret: Key used to sign URLs.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        root: Path,
        bucket: str = "comprovantes",
        base_url: str = "http://localhost:8000/files",
        secret: str = "change-me",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.directory = Path(root) / bucket
        self.base_url = base_url.rstrip("/")
        self._secret = secret.encode()
        self._clock = clock

    def path_for(self, key: str) -> Path:
        """Resolve a key to its file path, rejecting keys escaping the bucket."""
        parts = PurePosixPath(key).parts
        if not parts or key.startswith("/") or ".." in parts:
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.directory.joinpath(*parts)

    def put(
        self, key: str, data: bytes, content_type: str, overwrite: bool = False
    ) -> None:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb" if overwrite else "xb") as f:
                f.write(data)
        except FileExistsError as exc:
            raise StorageError(f"Object already exists: {key}") from exc
        except OSError as exc:
            raise StorageError(f"Cannot write {key}: {exc}") from exc
        logger.debug("Stored %s (%d bytes, %s)", key, len(data), content_type)

    def _signature(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        if not self.path_for(key).is_file():
            raise StorageError(f"Object not found: {key}")
        expires = int(self._clock()) + ttl_seconds
        query = urlencode({"expires": expires, "token": self._signature(key, expires)})
        return f"{self.base_url}/{key}?{query}"

    def verify(self, key: str, expires: int, token: str) -> bool:
        """Check a signed URL's token and expiry."""
        if expires < self._clock():
            return False
        return hmac.compare_digest(self._signature(key, expires), token)

    def read(self, key: str) -> bytes:
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError as exc:
            raise StorageError(f"Object not found: {key}") from exc
        except OSError as exc:
            raise StorageError(f"Cannot read {key}: {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError as exc:
            raise StorageError(f"Object not found: {key}") from exc
        except OSError as exc:
            raise StorageError(f"Cannot remove {key}: {exc}") from exc
        logger.debug("Removed %s", key)
