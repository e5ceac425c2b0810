"""Execution of rendered bind/unbind scripts."""

from .runner import ExecutionResult, ScriptRunner

__all__ = ["ExecutionResult", "ScriptRunner"]
