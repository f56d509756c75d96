"""Artifact storage module."""

from buildcache.storage.base import (
    BlobWriter,
    FileBlobStore,
    StorageProvider,
    artifact_path,
)
from buildcache.storage.factory import create_storage_provider
from buildcache.storage.location import ArtifactLocation, create_location

__all__ = [
    "ArtifactLocation",
    "BlobWriter",
    "FileBlobStore",
    "StorageProvider",
    "artifact_path",
    "create_location",
    "create_storage_provider",
]
