"""Google Cloud Storage backend."""

import asyncio
from typing import AsyncIterator

from google.api_core.exceptions import NotFound
from google.cloud import storage

from buildcache.config import GCSOptions
from buildcache.errors import ArtifactNotFound
from buildcache.storage.base import CHUNK_SIZE, SpooledBlobWriter


def build_client(options: GCSOptions) -> storage.Client:
    """Create a client from service account fields, or default credentials when unset."""
    if options.client_email and options.private_key:
        info = {
            "type": "service_account",
            "client_email": options.client_email,
            "private_key": options.private_key,
            "project_id": options.project_id,
            "token_uri": "https://oauth2.googleapis.com/token",
        }
        return storage.Client.from_service_account_info(info, project=options.project_id)
    return storage.Client(project=options.project_id)


class GoogleCloudStorageProvider:
    """Store artifacts as blobs in one bucket."""

    def __init__(self, bucket: str, options: GCSOptions, client=None):
        self._client = client or build_client(options)
        self._bucket = self._client.bucket(bucket)

    async def exists(self, artifact_path: str) -> bool:
        return await asyncio.to_thread(self._bucket.blob(artifact_path).exists)

    def create_read_stream(self, artifact_path: str) -> AsyncIterator[bytes]:
        return self._read(artifact_path)

    async def _read(self, artifact_path: str) -> AsyncIterator[bytes]:
        blob = self._bucket.blob(artifact_path)
        # the reader fetches lazily, so NotFound can surface on open or on first read
        try:
            reader = await asyncio.to_thread(blob.open, "rb")
            try:
                while chunk := await asyncio.to_thread(reader.read, CHUNK_SIZE):
                    yield chunk
            finally:
                reader.close()
        except NotFound as e:
            raise ArtifactNotFound(artifact_path) from e

    def create_write_stream(self, artifact_path: str) -> SpooledBlobWriter:
        blob = self._bucket.blob(artifact_path)
        return SpooledBlobWriter(lambda fileobj: blob.upload_from_file(fileobj, rewind=True))

    async def after_create_write_stream(self, artifact_path: str) -> None:
        pass
