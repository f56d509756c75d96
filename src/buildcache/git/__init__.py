"""Git integration module."""

from buildcache.git.client import GitClient

__all__ = ["GitClient"]
