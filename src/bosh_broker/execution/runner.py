"""Local script execution."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Result of executing a script."""

    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class ScriptRunner:
    """
    Runs an executable file and captures its output.

    Failures to start the process and timeouts are reported as a result with
    a negative exit status rather than raised, so callers only need to check
    `ok`.
    """

    def __init__(self, timeout: Optional[int] = 300, working_dir: Optional[str] = None) -> None:
        self.timeout = timeout
        self.working_dir = working_dir

    def execute(self, path: Union[str, Path]) -> ExecutionResult:
        command = str(Path(path).resolve())
        logger.debug("Executing %s", command)
        try:
            process = subprocess.run(
                [command],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=self.working_dir,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return ExecutionResult(
                command=command,
                stdout="",
                stderr=f"Script timed out after {self.timeout} seconds",
                exit_status=-1,
            )
        except OSError as exc:
            return ExecutionResult(
                command=command,
                stdout="",
                stderr=str(exc),
                exit_status=-1,
            )

        return ExecutionResult(
            command=command,
            stdout=process.stdout,
            stderr=process.stderr.strip(),
            exit_status=process.returncode,
        )
