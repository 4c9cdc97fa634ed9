"""Data types for shell command results."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["CommandResult", "Workload"]


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def output(self) -> str:
        """Error output if present, otherwise standard output."""
        return (self.stderr or self.stdout).strip()


@dataclass(frozen=True)
class Workload:
    """A Deployment or StatefulSet found in rendered output.

    Attributes:
        kind: Object kind, lowercased (deployment, statefulset)
        name: metadata.name
        selector: Label selector built from spec.selector.matchLabels
    """

    kind: str
    name: str
    selector: str = ""
