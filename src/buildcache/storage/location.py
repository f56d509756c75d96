"""Backend-agnostic artifact access by team and artifact id."""

import logging
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Iterable

from buildcache.config import StorageConfig
from buildcache.errors import ArtifactNotFound
from buildcache.storage.base import StorageProvider, artifact_path
from buildcache.storage.factory import create_storage_provider

logger = logging.getLogger(__name__)

ArtifactSource = AsyncIterable[bytes] | Iterable[bytes] | bytes


async def _iter_chunks(source: ArtifactSource) -> AsyncIterator[bytes]:
    if isinstance(source, (bytes, bytearray, memoryview)):
        yield bytes(source)
    elif hasattr(source, "__aiter__"):
        async for chunk in source:
            yield chunk
    else:
        for chunk in source:
            yield chunk


class ArtifactLocation:
    """Translate (team, artifact) pairs into backend paths and run stream lifecycles."""

    def __init__(self, provider: StorageProvider):
        self.provider = provider

    async def get_cached_artifact(self, artifact_id: str, team_id: str) -> AsyncIterator[bytes]:
        """Return a read stream for an artifact. Raises ArtifactNotFound if absent."""
        path = artifact_path(team_id, artifact_id)
        if not await self.provider.exists(path):
            raise ArtifactNotFound(path)
        return self.provider.create_read_stream(path)

    async def exists_cached_artifact(self, artifact_id: str, team_id: str) -> None:
        """Raise ArtifactNotFound if the artifact is absent."""
        path = artifact_path(team_id, artifact_id)
        if not await self.provider.exists(path):
            raise ArtifactNotFound(path)

    async def create_cached_artifact(
        self,
        artifact_id: str,
        team_id: str,
        artifact: ArtifactSource,
    ) -> None:
        """Write an artifact, then run the backend's post-write hook."""
        path = artifact_path(team_id, artifact_id)
        writer = self.provider.create_write_stream(path)
        size = 0
        try:
            async for chunk in _iter_chunks(artifact):
                size += len(chunk)
                await writer.write(chunk)
        except BaseException:
            await writer.abort()
            raise
        await writer.close()
        logger.debug(f"Stored {size} bytes at {path}")

        await self.provider.after_create_write_stream(path)


async def create_location(config: StorageConfig, root: Path | None = None) -> ArtifactLocation:
    """Build the configured backend and wrap it in an ArtifactLocation."""
    provider = await create_storage_provider(config, root)
    return ArtifactLocation(provider)
