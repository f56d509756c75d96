"""Sequential git command wrapper."""

from pathlib import Path

from buildcache.errors import ProcessFailure
from buildcache.executor.process import run_process


class GitClient:
    """Run git commands in a fixed working directory."""

    def __init__(self, cwd: str | Path, cmd: str | None = None, timeout: float | None = None):
        self.cwd = Path(cwd)
        self.cmd = cmd or "git"
        self.timeout = timeout
        self.output = ""

    async def execute(self, *args: str) -> str:
        """Run a git command. Stores and returns its combined output."""
        result = await run_process(self.cmd, list(args), self.cwd, timeout=self.timeout)
        self.output = result.output
        return self.output

    async def add(self, paths: str | list[str]) -> str:
        """Stage one path or a list of paths."""
        files = paths if isinstance(paths, list) else [paths]
        return await self.execute("add", "--", *files)

    async def commit(self, message: str) -> None:
        """Commit staged changes, skipping silently when the tree matches HEAD."""
        try:
            await self.execute("diff-index", "--quiet", "HEAD")
        except ProcessFailure:
            # diff-index exits non-zero when there is something to commit
            await self.execute("commit", "-m", message)

    async def push(self, remote: str, branch: str) -> str:
        """Push a branch and all tags."""
        return await self.execute("push", "--tags", remote, branch)

    async def get_config(self, key: str) -> str | None:
        """Read a config value. Returns None when the key is unset."""
        try:
            value = await self.execute("config", "--get", key)
        except ProcessFailure:
            return None
        return value.strip()
