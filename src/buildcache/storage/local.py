"""Local filesystem storage backend."""

import tempfile
from pathlib import Path
from typing import AsyncIterator

from buildcache.storage.base import FileBlobStore, FileBlobWriter


class LocalProvider:
    """Store artifacts as files below a directory."""

    def __init__(self, path: str, use_tmp: bool = True):
        base = Path(tempfile.gettempdir()) / path if use_tmp else Path(path)
        self.root = base.expanduser()
        self.root.mkdir(parents=True, exist_ok=True)
        self.blobs = FileBlobStore(self.root)

    async def exists(self, artifact_path: str) -> bool:
        return await self.blobs.exists(artifact_path)

    def create_read_stream(self, artifact_path: str) -> AsyncIterator[bytes]:
        return self.blobs.create_read_stream(artifact_path)

    def create_write_stream(self, artifact_path: str) -> FileBlobWriter:
        return self.blobs.create_write_stream(artifact_path)

    async def after_create_write_stream(self, artifact_path: str) -> None:
        """No-op for local storage - bytes are durable once the stream closes."""
        pass
