"""Command runner for executing shell commands.

This module provides the base command execution functionality used by
the helm and kubectl command modules.
"""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from .types import CommandResult


class CommandRunner:
    """Low-level command executor with consistent result handling.

    Captured runs return stdout and stderr in a ``CommandResult``;
    uncaptured runs attach the child to the terminal, for interactive
    commands such as ``kubectl exec -it`` or ``kubectl logs -f``.
    """

    def __init__(self, project_root: Path) -> None:
        """Initialize the command runner.

        Args:
            project_root: Directory commands are executed from by default
        """
        self.project_root = project_root

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        capture_output: bool = True,
        input_data: str | None = None,
    ) -> CommandResult:
        """Execute a command and return a structured result.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to project_root)
            capture_output: Whether to capture stdout/stderr
            input_data: Text written to the command's stdin

        Returns:
            CommandResult with success status, output, and return code
        """
        logger.debug(f"Running: {shlex.join(cmd)}")
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.project_root,
                capture_output=capture_output,
                text=True,
                input=input_data,
            )
        except FileNotFoundError as e:
            return CommandResult(success=False, stderr=str(e), returncode=127)

        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )
