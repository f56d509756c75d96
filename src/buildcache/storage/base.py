"""Storage provider protocol and shared blob adapters."""

import asyncio
import os
import tempfile
import uuid
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Callable, Protocol

from buildcache.errors import ArtifactNotFound, InvalidArtifactPath

CHUNK_SIZE = 64 * 1024
SPOOL_MAX_SIZE = 8 * 1024 * 1024


def artifact_path(team_id: str, artifact_id: str) -> str:
    """Join a team and artifact identifier into a backend-relative path."""
    for kind, value in (("team", team_id), ("artifact", artifact_id)):
        if not value or value in (".", "..") or any(c in value for c in "/\\\x00"):
            raise InvalidArtifactPath(f"Invalid {kind} identifier: {value!r}")
    return f"{team_id}/{artifact_id}"


class BlobWriter(Protocol):
    """Byte sink returned by create_write_stream."""

    async def write(self, data: bytes) -> None:
        """Append a chunk."""
        ...

    async def close(self) -> None:
        """Persist everything written. Bytes are durable once this returns."""
        ...

    async def abort(self) -> None:
        """Discard everything written."""
        ...


class StorageProvider(Protocol):
    """Protocol every storage backend implements."""

    async def exists(self, artifact_path: str) -> bool:
        """Check if an artifact exists."""
        ...

    def create_read_stream(self, artifact_path: str) -> AsyncIterator[bytes]:
        """Stream artifact bytes. Absence surfaces on the first read."""
        ...

    def create_write_stream(self, artifact_path: str) -> BlobWriter:
        """Open a sink for artifact bytes."""
        ...

    async def after_create_write_stream(self, artifact_path: str) -> None:
        """Hook run after a write stream closed successfully. May be a no-op."""
        ...


class FileBlobWriter:
    """Write to a temporary sibling file and rename it into place on close."""

    def __init__(self, path: Path):
        self.path = path
        self._tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        self._file: BinaryIO | None = None
        self._done = False

    def _open(self) -> BinaryIO:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return open(self._tmp_path, "wb")

    def _commit(self) -> None:
        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()
        os.replace(self._tmp_path, self.path)

    def _discard(self) -> None:
        if self._file is not None:
            self._file.close()
        self._tmp_path.unlink(missing_ok=True)

    async def write(self, data: bytes) -> None:
        if self._done:
            raise ValueError(f"Write stream for {self.path} is closed")
        if self._file is None:
            self._file = await asyncio.to_thread(self._open)
        await asyncio.to_thread(self._file.write, data)

    async def close(self) -> None:
        if self._done:
            return
        if self._file is None:
            self._file = await asyncio.to_thread(self._open)
        self._done = True
        try:
            await asyncio.to_thread(self._commit)
        except BaseException:
            await asyncio.to_thread(self._discard)
            raise

    async def abort(self) -> None:
        if self._done:
            return
        self._done = True
        await asyncio.to_thread(self._discard)


class SpooledBlobWriter:
    """Buffer a blob locally and hand it to an upload callable on close.

    Used by object-storage backends whose SDKs upload whole file objects.
    """

    def __init__(self, upload: Callable[[BinaryIO], object]):
        self._upload = upload
        self._buffer = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
        self._done = False

    async def write(self, data: bytes) -> None:
        if self._done:
            raise ValueError("Write stream is closed")
        await asyncio.to_thread(self._buffer.write, data)

    async def close(self) -> None:
        if self._done:
            return
        self._done = True
        try:
            self._buffer.seek(0)
            await asyncio.to_thread(self._upload, self._buffer)
        finally:
            self._buffer.close()

    async def abort(self) -> None:
        if self._done:
            return
        self._done = True
        self._buffer.close()


class FileBlobStore:
    """Blob store over a directory. Keys are relative paths below the root."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def resolve(self, key: str) -> Path:
        """Map a key to a path, refusing keys that escape the root."""
        root = self.root.resolve()
        candidate = (root / key).resolve()
        if candidate == root or root not in candidate.parents:
            raise InvalidArtifactPath(f"Artifact path escapes storage root: {key}")
        return candidate

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self.resolve(key).exists)

    def create_read_stream(self, key: str) -> AsyncIterator[bytes]:
        return self._read(key, self.resolve(key))

    async def _read(self, key: str, path: Path) -> AsyncIterator[bytes]:
        try:
            f = await asyncio.to_thread(open, path, "rb")
        except FileNotFoundError as e:
            raise ArtifactNotFound(key) from e
        try:
            while chunk := await asyncio.to_thread(f.read, CHUNK_SIZE):
                yield chunk
        finally:
            f.close()

    def create_write_stream(self, key: str) -> FileBlobWriter:
        return FileBlobWriter(self.resolve(key))
