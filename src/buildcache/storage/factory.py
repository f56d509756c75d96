"""Storage backend construction."""

import logging
from pathlib import Path

from buildcache.config import StorageConfig, StorageProviderKind, unsupported_provider_message
from buildcache.errors import ConfigurationError
from buildcache.storage.base import StorageProvider

logger = logging.getLogger(__name__)


async def create_storage_provider(
    config: StorageConfig,
    root: Path | None = None,
) -> StorageProvider:
    """Construct the backend selected by ``config.provider``.

    ``root`` overrides the parent directory of the git working copy.
    """
    provider = config.provider
    logger.info(f"Using {getattr(provider, 'value', provider)} storage ({config.path})")

    if provider == StorageProviderKind.LOCAL:
        from buildcache.storage.local import LocalProvider

        return LocalProvider(config.path, use_tmp=config.use_tmp)

    if provider == StorageProviderKind.S3:
        from buildcache.storage.s3 import S3Provider

        return S3Provider(config.path, config.s3)

    if provider == StorageProviderKind.GOOGLE_CLOUD_STORAGE:
        from buildcache.storage.gcs import GoogleCloudStorageProvider

        return GoogleCloudStorageProvider(config.path, config.gcs)

    if provider == StorageProviderKind.AZURE_BLOB_STORAGE:
        from buildcache.storage.azure_blob import AzureBlobStorageProvider

        return AzureBlobStorageProvider(config.path, config.azure)

    if provider == StorageProviderKind.GIT_REPOSITORY:
        from buildcache.storage.git_repository import create_git_repository

        if config.git is None:
            raise ConfigurationError("storage.git is required when provider is 'git-repository'")
        return await create_git_repository(config.git, config.path, root)

    raise ConfigurationError(unsupported_provider_message(provider))
