"""Receipt upload workflow.

Compresses a receipt photo, stores it under the user's prefix and returns
a long-lived signed URL. Every failure is logged and reported to the
caller as ``None``; there is no partial result and no retry.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from finance_receipts.errors import PreconditionError, ReceiptError
from finance_receipts.preprocessing.compress import (
    OUTPUT_EXTENSION,
    ImageSource,
    compress,
)
from finance_receipts.storage.base import IdentityProvider, ObjectStorage, key_from_url
from finance_receipts.utils.config import CompressionConfig, StorageConfig
from finance_receipts.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class UploadResult:
    """Where an uploaded receipt lives and the OCR text it came with."""

    url: str
    key: str
    original_size: int
    compressed_size: int
    ocr_text: str | None = None


def receipt_key(user_id: str, unix_millis: int) -> str:
    """Build the storage key ``{user_id}/{unix_millis}.jpg``."""
    return f"{user_id}/{unix_millis}{OUTPUT_EXTENSION}"


class ReceiptUploader:
    """Upload, sign and remove receipt images for the current user.

    Args:
        storage: Object storage collaborator.
        identity: Supplies the authenticated user's id.
        compression: Width and quality bounds for uploads.
        storage_config: Signed URL lifetimes.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        storage: ObjectStorage,
        identity: IdentityProvider,
        compression: CompressionConfig | None = None,
        storage_config: StorageConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.storage = storage
        self.identity = identity
        self.compression = compression or CompressionConfig()
        self.storage_config = storage_config or StorageConfig()
        self._clock = clock

    def _require_user(self) -> str:
        user_id = self.identity.current_user_id()
        if not user_id:
            raise PreconditionError("User is not authenticated")
        return user_id

    def upload(
        self, image: ImageSource, ocr_text: str | None = None
    ) -> UploadResult | None:
        """Compress and upload a receipt image.

        Args:
            image: Receipt photo as bytes, path or decoded array.
            ocr_text: Text already recognized from the photo, passed through.

        Returns:
            The upload result, or ``None`` if any step failed.
        """
        try:
            user_id = self._require_user()
            compressed = compress(
                image,
                max_width=self.compression.max_width,
                quality=self.compression.quality,
            )
            key = receipt_key(user_id, int(self._clock() * 1000))
            self.storage.put(key, compressed.data, compressed.content_type)
            url = self.storage.signed_url(key, self.storage_config.receipt_url_ttl)
        except ReceiptError as exc:
            logger.error("Receipt upload failed: %s: %s", type(exc).__name__, exc)
            return None

        logger.info(
            "Uploaded receipt %s: %d -> %d bytes",
            key,
            compressed.original_size,
            compressed.size,
        )
        return UploadResult(
            url=url,
            key=key,
            original_size=compressed.original_size,
            compressed_size=compressed.size,
            ocr_text=ocr_text,
        )

    def remove(self, url: str) -> bool:
        """Delete the receipt referenced by a previously returned URL."""
        try:
            self._require_user()
            key = key_from_url(url)
            self.storage.remove(key)
        except (ReceiptError, ValueError) as exc:
            logger.error("Receipt removal failed: %s", exc)
            return False
        logger.info("Removed receipt %s", key)
        return True

    def view_url(self, key: str, expires_in: int | None = None) -> str | None:
        """Issue a short-lived URL for displaying a stored receipt."""
        ttl = self.storage_config.view_url_ttl if expires_in is None else expires_in
        try:
            return self.storage.signed_url(key, ttl)
        except ReceiptError as exc:
            logger.error("Could not sign receipt URL for %s: %s", key, exc)
            return None
