"""Tests for the process runner."""

from pathlib import Path

import pytest

from buildcache.errors import ProcessFailure
from buildcache.executor import run_process


class TestRunProcess:
    @pytest.mark.asyncio
    async def test_success_returns_output(self):
        result = await run_process("sh", ["-c", "echo hello"])
        assert result.exit_code == 0
        assert result.failed is False
        assert result.output == "hello\n"

    @pytest.mark.asyncio
    async def test_stdout_and_stderr_combined_in_order(self):
        result = await run_process("sh", ["-c", "echo out; echo err >&2; echo more"])
        assert result.output == "out\nerr\nmore\n"

    @pytest.mark.asyncio
    async def test_failure_carries_code_and_output(self):
        with pytest.raises(ProcessFailure) as exc_info:
            await run_process("sh", ["-c", "echo boom >&2; exit 3"])

        assert exc_info.value.code == 3
        assert exc_info.value.output == "boom\n"
        assert str(exc_info.value) == "boom\n"

    @pytest.mark.asyncio
    async def test_failure_without_output_synthesizes_message(self):
        with pytest.raises(ProcessFailure) as exc_info:
            await run_process("sh", ["-c", "exit 4"])

        assert exc_info.value.code == 4
        assert str(exc_info.value) == "Process failed: 4. (command: sh -c exit 4)"

    @pytest.mark.asyncio
    async def test_runs_in_working_directory(self, tmp_path):
        result = await run_process("pwd", [], tmp_path)
        assert Path(result.output.strip()).resolve() == tmp_path.resolve()

    @pytest.mark.asyncio
    async def test_no_stdin(self):
        result = await run_process("sh", ["-c", "cat; echo done"])
        assert result.output == "done\n"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        with pytest.raises(ProcessFailure, match="timed out") as exc_info:
            await run_process("sleep", ["5"], timeout=0.2)
        assert exc_info.value.code == -1

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        with pytest.raises(ProcessFailure) as exc_info:
            await run_process("definitely-not-a-real-command-xyz", [])
        assert exc_info.value.code == 127

    @pytest.mark.asyncio
    async def test_missing_working_directory(self, tmp_path):
        with pytest.raises(ProcessFailure, match="Working directory") as exc_info:
            await run_process("pwd", [], tmp_path / "missing")
        assert exc_info.value.code == 126

    @pytest.mark.asyncio
    async def test_non_executable_file(self, tmp_path):
        script = tmp_path / "script.sh"
        script.write_text("#!/bin/sh\necho hi\n")
        script.chmod(0o644)

        with pytest.raises(ProcessFailure) as exc_info:
            await run_process(str(script), [])
        assert exc_info.value.code == 126
