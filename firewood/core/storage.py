# firewood/core/storage.py
"""
Product images in Supabase Storage.

The service-role client is created on first use so the API starts (and
orders keep working) without any Supabase configuration.
"""

import uuid
from functools import lru_cache

from supabase import Client, create_client

from firewood.core.config import get_settings

DEFAULT_BUCKET = "assets"


class StorageNotConfigured(RuntimeError):
    """SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY missing."""


@lru_cache
def supabase_admin() -> Client:
    # Service role key: backend only, never sent to the browser
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise StorageNotConfigured("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


class ImageStorage:
    """
    Upload and delete objects in one public bucket.

    Objects for a product live under products/<product_id>/<uuid>.<ext>,
    so a replaced image never collides with a cached URL of the old one.
    """

    def __init__(self, bucket: str = DEFAULT_BUCKET, client_factory=supabase_admin):
        self.bucket = bucket
        self._client_factory = client_factory

    def _bucket(self):
        return self._client_factory().storage.from_(self.bucket)

    @staticmethod
    def product_image_path(product_id: uuid.UUID, ext: str) -> str:
        return f"products/{product_id}/{uuid.uuid4()}.{ext}"

    def upload(self, path: str, file_bytes: bytes, content_type: str) -> str:
        """
        Store `file_bytes` at `path` (overwriting) and return its public URL.
        """
        bucket = self._bucket()
        bucket.upload(path, file_bytes, {"upsert": "true", "content-type": content_type})
        return bucket.get_public_url(path)

    def path_from_url(self, url: str) -> str | None:
        """
        https://<proj>.supabase.co/storage/v1/object/public/assets/products/p/x.png
        -> 'products/p/x.png'; None for URLs outside this bucket.
        """
        marker = f"/storage/v1/object/public/{self.bucket}/"
        idx = url.find(marker)
        if idx == -1:
            return None
        return url[idx + len(marker) :].split("?", 1)[0] or None

    def delete_url(self, url: str) -> bool:
        path = self.path_from_url(url)
        if not path:
            return False
        self._bucket().remove([path])
        return True


@lru_cache
def get_image_storage() -> ImageStorage:
    return ImageStorage()
