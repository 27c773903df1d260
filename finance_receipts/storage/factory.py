"""Select the configured object storage backend."""

from pathlib import Path

from finance_receipts.utils.config import StorageConfig

from .base import ObjectStorage
from .local import LocalStorage
from .supabase import SupabaseStorage


def build_storage(config: StorageConfig) -> ObjectStorage:
    """Create the storage client described by the configuration.

    Raises:
        ValueError: If the Supabase backend is selected without URL or key.
    """
    if config.backend == "supabase":
        if not config.supabase_url or not config.supabase_key:
            raise ValueError("Supabase storage requires supabase_url and supabase_key")
        return SupabaseStorage(
            base_url=config.supabase_url,
            api_key=config.supabase_key,
            bucket=config.bucket,
            cache_control=config.cache_control,
            timeout=config.timeout,
        )

    return LocalStorage(
        root=Path(config.local_root),
        bucket=config.bucket,
        base_url=config.public_base_url,
        secret=config.signing_secret,
    )
