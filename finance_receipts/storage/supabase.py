"""Supabase Storage client over its REST API."""

from typing import Any

import requests

from finance_receipts.errors import StorageError
from finance_receipts.utils.logger import get_logger

logger = get_logger(__name__)


class SupabaseStorage:
    """Object storage backed by a private Supabase Storage bucket.

    Args:
        base_url: Project URL, e.g. ``https://xyz.supabase.co``.
        api_key: Service or user API key sent as bearer token.
        bucket: Bucket name.
        cache_control: ``max-age`` applied to uploaded objects, in seconds.
        timeout: Request timeout in seconds.
        session: Optional pre-configured requests session.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        bucket: str = "comprovantes",
        cache_control: str = "3600",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.cache_control = cache_control
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {"Authorization": f"Bearer {api_key}", "apikey": api_key}
        )

    @property
    def storage_url(self) -> str:
        return f"{self.base_url}/storage/v1"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            detail = ""
            if exc.response is not None:
                detail = f" ({exc.response.status_code}: {exc.response.text[:200]})"
            raise StorageError(f"{method} {url} failed: {exc}{detail}") from exc
        return response

    def put(
        self, key: str, data: bytes, content_type: str, overwrite: bool = False
    ) -> None:
        self._request(
            "POST",
            f"{self.storage_url}/object/{self.bucket}/{key}",
            data=data,
            headers={
                "Content-Type": content_type,
                "cache-control": f"max-age={self.cache_control}",
                "x-upsert": "true" if overwrite else "false",
            },
        )
        logger.debug("Uploaded %s to bucket %s", key, self.bucket)

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        response = self._request(
            "POST",
            f"{self.storage_url}/object/sign/{self.bucket}/{key}",
            json={"expiresIn": ttl_seconds},
        )
        try:
            signed_path = response.json().get("signedURL")
        except ValueError as exc:
            raise StorageError(f"Invalid signing response for {key}") from exc
        if not signed_path:
            raise StorageError(f"No signed URL returned for {key}")
        return f"{self.storage_url}{signed_path}"

    def remove(self, key: str) -> None:
        self._request(
            "DELETE",
            f"{self.storage_url}/object/{self.bucket}",
            json={"prefixes": [key]},
        )
        logger.debug("Removed %s from bucket %s", key, self.bucket)
