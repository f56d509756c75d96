"""Git repository storage backend.

The backend keeps one working copy of one branch and treats it as a blob directory.
Reads pull before checking presence; writes land in the working copy and are
committed and pushed by the post-write hook.
"""

import asyncio
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import AsyncIterator
from urllib.parse import quote

from buildcache.config import GitStorageConfig
from buildcache.errors import InvalidArtifactPath, ProcessFailure, SynchronizationFailure
from buildcache.git.client import GitClient
from buildcache.storage.base import FileBlobStore, FileBlobWriter

logger = logging.getLogger(__name__)

REPOSITORY_DIR = "git-repository"
CREDENTIALS_FILE = ".git-credentials"


def empty_dir(path: Path) -> None:
    """Remove everything inside a directory, keeping the directory itself."""
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def check_artifact_path(artifact_path: str) -> str:
    """Refuse paths that reach into git metadata of the working copy."""
    if any(part.lower() == ".git" for part in artifact_path.split("/")):
        raise InvalidArtifactPath(f"Artifact path is reserved by git: {artifact_path}")
    return artifact_path


class GitRepositoryProvider:
    """Storage provider backed by a git working copy synchronized with a remote."""

    def __init__(self, options: GitStorageConfig, path: str, root: Path | None = None):
        self.options = options
        base = Path(root or options.root or tempfile.gettempdir()) / REPOSITORY_DIR
        self.cache_dir = base / path
        self.credential_path = base / CREDENTIALS_FILE
        self.git = GitClient(self.cache_dir, timeout=options.command_timeout)
        self.blobs = FileBlobStore(self.cache_dir)
        self.skip_clone = False
        # artifacts left on disk by a failed commit or push
        self.unsynced: set[str] = set()
        self._lock = asyncio.Lock()

    @property
    def tracking_ref(self) -> str:
        return f"{self.options.remote}/{self.options.branch}"

    async def init(self) -> None:
        """Bring the cache directory to a clean checkout of the remote branch."""
        await self.ensure_cache_dir()
        await self.clone()
        await self.checkout()
        await self.configure()
        logger.info(f"Git storage is ready at {self.cache_dir}")

    async def ensure_cache_dir(self) -> None:
        cache_dir = self.cache_dir
        self.skip_clone = False

        if not cache_dir.exists():
            logger.debug(f"Make cache directory {cache_dir}")
            cache_dir.mkdir(parents=True)
            return

        logger.debug(f"Cache directory {cache_dir} already exists")
        if not (cache_dir / ".git").exists():
            logger.debug(f"No .git directory, empty cache directory {cache_dir}")
            empty_dir(cache_dir)
            return

        if not self.options.use_local_cache:
            logger.debug(f"Local cache disabled, empty cache directory {cache_dir}")
            empty_dir(cache_dir)
            return

        url = await self.git.get_config(f"remote.{self.options.remote}.url") or ""
        if url != self.options.repository:
            logger.debug(
                f'Url mismatch. Got "{url}" but expected "{self.options.repository}"'
            )
            logger.debug(f"Empty cache directory {cache_dir}")
            empty_dir(cache_dir)
        else:
            self.skip_clone = True

    async def clone(self) -> None:
        if self.skip_clone:
            logger.debug("Skipping clone")
            return

        logger.debug(f"Cloning {self.options.repository} into {self.cache_dir}")
        args = [
            "clone",
            self.options.repository,
            str(self.cache_dir),
            "--branch",
            self.options.branch,
            "--single-branch",
            "--origin",
            self.options.remote,
        ]
        if self.options.clone_depth > 0:
            args += ["--depth", str(self.options.clone_depth)]
        await self.git.execute(*args)

    async def checkout(self) -> None:
        logger.debug(f"Checking out {self.tracking_ref}")
        await self.git.execute("ls-remote", "--exit-code", ".", self.tracking_ref)
        await self.git.execute("checkout", self.options.branch)
        await self.git.execute("reset", "--hard", self.tracking_ref)

    async def configure(self) -> None:
        options = self.options
        logger.debug(f"Configuring git user {options.user_name} <{options.user_email}>")
        await self.git.execute("config", "user.email", options.user_email)
        await self.git.execute("config", "user.name", options.user_name)
        await self.git.execute("config", "commit.gpgsign", "false")
        await self.git.execute(
            "config", "credential.helper", f"store --file={self.credential_path}"
        )
        if options.user_password and not self.credential_path.exists():
            logger.debug(f"Writing credentials for {options.host} to {self.credential_path}")
            fd = os.open(self.credential_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "w") as f:
                f.write(self.credential_url())

    def credential_url(self) -> str:
        user = quote(self.options.user_name, safe="")
        password = quote(self.options.user_password or "", safe="")
        return f"https://{user}:{password}@{self.options.host}\n"

    async def pull(self) -> None:
        logger.debug(f"Pulling fast-forward only from {self.tracking_ref}")
        try:
            await self.git.execute(
                "pull", "--ff-only", self.options.remote, self.options.branch
            )
        except ProcessFailure as e:
            raise SynchronizationFailure.from_process_failure(e) from e

    async def push(self) -> None:
        logger.debug(f"Pushing to {self.tracking_ref}")
        try:
            await self.git.push(self.options.remote, self.options.branch)
        except ProcessFailure as e:
            raise SynchronizationFailure.from_process_failure(e) from e

    async def sync(self) -> None:
        """Pull, dropping unsynced artifacts and retrying once if the pull fails."""
        try:
            await self.pull()
        except SynchronizationFailure:
            if not self.unsynced:
                raise
            logger.warning(
                f"Pull failed, discarding {len(self.unsynced)} unsynced artifact(s)"
            )
            for artifact_path in sorted(self.unsynced):
                await self.discard(artifact_path)
            await self.pull()

    async def discard(self, artifact_path: str) -> None:
        """Put an artifact back to its state in HEAD, deleting it when HEAD lacks it."""
        logger.debug(f"Discarding local changes to {artifact_path}")
        try:
            await self.git.execute("cat-file", "-e", f"HEAD:{artifact_path}")
        except ProcessFailure:
            await self.git.execute(
                "rm", "--cached", "--ignore-unmatch", "--quiet", "--", artifact_path
            )
            self.blobs.resolve(artifact_path).unlink(missing_ok=True)
        else:
            await self.git.execute("checkout", "HEAD", "--", artifact_path)
        self.unsynced.discard(artifact_path)

    async def commit_and_push(self, artifact_path: str) -> None:
        logger.debug(f"Adding {artifact_path}")
        await self.git.add(artifact_path)

        logger.debug("Committing")
        await self.git.commit(f"chore: update cache {artifact_path}")

        await self.push()

    async def exists(self, artifact_path: str) -> bool:
        check_artifact_path(artifact_path)
        async with self._lock:
            await self.sync()
            exists = await self.blobs.exists(artifact_path)
        logger.debug(f"exists: {exists} {self.cache_dir / artifact_path}")
        return exists

    def create_read_stream(self, artifact_path: str) -> AsyncIterator[bytes]:
        return self.blobs.create_read_stream(check_artifact_path(artifact_path))

    def create_write_stream(self, artifact_path: str) -> FileBlobWriter:
        return self.blobs.create_write_stream(check_artifact_path(artifact_path))

    async def after_create_write_stream(self, artifact_path: str) -> None:
        check_artifact_path(artifact_path)
        async with self._lock:
            self.unsynced.discard(artifact_path)
            try:
                await self.sync()
            except ProcessFailure as e:
                logger.error(f"Failed to sync {artifact_path} from {self.tracking_ref}: {e}")
                # an untracked artifact would block every later fast-forward
                await self.discard(artifact_path)
                raise

            head = (await self.git.execute("rev-parse", "HEAD")).strip()
            try:
                await self.commit_and_push(artifact_path)
            except ProcessFailure as e:
                logger.error(f"Failed to sync {artifact_path} to {self.tracking_ref}: {e}")
                # keep the bytes, drop the unpushed commit so history cannot diverge
                await self.git.execute("reset", "--mixed", "--quiet", head)
                self.unsynced.add(artifact_path)
                raise
            self.unsynced.discard(artifact_path)


async def create_git_repository(
    options: GitStorageConfig,
    path: str,
    root: Path | None = None,
) -> GitRepositoryProvider:
    """Create a git provider and run its one-time initialization."""
    provider = GitRepositoryProvider(options, path, root)
    await provider.init()
    return provider
