"""Supabase Storage client for food images."""

import asyncio
from dataclasses import dataclass

from supabase import Client

from nutriscan.services.saving import StorageClient


@dataclass
class SupabaseStorageClient(StorageClient):
    """Upload objects to a Supabase Storage bucket with upsert semantics."""

    client: Client

    async def upload(
        self, bucket: str, key: str, data: bytes, content_type: str
    ) -> str:
        """Upload bytes to ``bucket/key`` and return the public URL."""
        return await asyncio.to_thread(self._upload, bucket, key, data, content_type)

    def _upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        storage = self.client.storage.from_(bucket)
        storage.upload(
            path=key,
            file=data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        return storage.get_public_url(key)
