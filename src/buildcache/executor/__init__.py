"""Executor module for external command execution."""

from buildcache.executor.base import ProcessResult
from buildcache.executor.process import run_process

__all__ = ["ProcessResult", "run_process"]
