"""Error types raised by the cache server."""


class BuildCacheError(Exception):
    """Base class for all cache server errors."""


class ConfigurationError(BuildCacheError):
    """Invalid or missing backend options."""


class ProcessFailure(BuildCacheError):
    """An external command exited with a non-zero status."""

    def __init__(self, code: int, output: str, command: list[str] | None = None):
        self.code = code
        self.output = output
        self.command = command or []
        message = output or f"Process failed: {code}. (command: {' '.join(self.command)})"
        super().__init__(message)


class SynchronizationFailure(ProcessFailure):
    """The working copy could not be fast-forwarded or pushed."""

    @classmethod
    def from_process_failure(cls, e: ProcessFailure) -> "SynchronizationFailure":
        return cls(e.code, e.output, e.command)


class ArtifactNotFound(BuildCacheError):
    """The requested artifact is not present in the backend."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Artifact {path} doesn't exist.")


class InvalidArtifactPath(BuildCacheError, ValueError):
    """A team or artifact identifier would escape the backend root."""
