"""Interfaces of the external collaborators used by the upload workflow."""

from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlparse


class ObjectStorage(Protocol):
    """Private object storage bucket.

    Implementations raise ``StorageError`` on any failure.
    """

    def put(
        self, key: str, data: bytes, content_type: str, overwrite: bool = False
    ) -> None: ...

    def signed_url(self, key: str, ttl_seconds: int) -> str: ...

    def remove(self, key: str) -> None: ...


class IdentityProvider(Protocol):
    """Source of the authenticated user's identifier."""

    def current_user_id(self) -> str | None: ...


@dataclass(frozen=True)
class StaticIdentity:
    """Identity known up front, e.g. from a request header or CLI flag."""

    user_id: str | None

    def current_user_id(self) -> str | None:
        return self.user_id or None


def key_from_url(url: str) -> str:
    """Recover a ``{user_id}/{file}`` storage key from an object URL.

    Raises:
        ValueError: If the URL path has fewer than two segments.
    """
    parts = [part for part in urlparse(url).path.split("/") if part]
    if len(parts) < 2:
        raise ValueError(f"URL does not reference a stored receipt: {url}")
    return "/".join(parts[-2:])
