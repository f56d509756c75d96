"""Azure Blob Storage backend."""

import asyncio
from typing import AsyncIterator

from azure.core.exceptions import ResourceNotFoundError
from azure.storage.blob import BlobServiceClient

from buildcache.config import AzureOptions
from buildcache.errors import ArtifactNotFound
from buildcache.storage.base import SpooledBlobWriter


class AzureBlobStorageProvider:
    """Store artifacts as blobs in one container."""

    def __init__(self, container: str, options: AzureOptions, client=None):
        if client is None:
            client = BlobServiceClient.from_connection_string(options.connection_string)
        self._container = client.get_container_client(container)

    async def exists(self, artifact_path: str) -> bool:
        blob = self._container.get_blob_client(artifact_path)
        return await asyncio.to_thread(blob.exists)

    def create_read_stream(self, artifact_path: str) -> AsyncIterator[bytes]:
        return self._read(artifact_path)

    async def _read(self, artifact_path: str) -> AsyncIterator[bytes]:
        blob = self._container.get_blob_client(artifact_path)
        try:
            downloader = await asyncio.to_thread(blob.download_blob)
        except ResourceNotFoundError as e:
            raise ArtifactNotFound(artifact_path) from e

        chunks = downloader.chunks()
        while chunk := await asyncio.to_thread(next, chunks, b""):
            yield chunk

    def create_write_stream(self, artifact_path: str) -> SpooledBlobWriter:
        blob = self._container.get_blob_client(artifact_path)
        return SpooledBlobWriter(lambda fileobj: blob.upload_blob(fileobj, overwrite=True))

    async def after_create_write_stream(self, artifact_path: str) -> None:
        pass
