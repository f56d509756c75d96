"""HTTP API module."""

from buildcache.api.app import create_app

__all__ = ["create_app"]
