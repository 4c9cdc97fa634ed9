"""Shell command abstractions for helm, kubectl and the Docker registry.

This package is organized into specialized modules for each tool:

- helm: chart rendering, linting and Helm registry operations
- kubectl: cluster operations on rendered manifests
- docker: Docker registry tag and image listing

Usage:
    from ankh.cli.deployment.shell_commands import ShellCommands

    commands = ShellCommands(project_root=Path("."))
    versions = commands.helm.list_versions(registry, "my-chart")
"""

from pathlib import Path

import httpx

from ankh.cli.deployment.constants import HTTP_TIMEOUT
from ankh.utils.console_like import Prompter

from .docker import DockerCommands
from .helm import HelmCommands
from .kubectl import KubectlCommands
from .runner import CommandRunner
from .types import CommandResult, Workload


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        docker: Docker registry queries
        helm: Helm-related commands
        kubectl: Kubernetes kubectl commands
    """

    def __init__(self, project_root: Path, prompter: Prompter | None = None) -> None:
        """Initialize the shell commands executor.

        Args:
            project_root: Directory commands are executed from by default
            prompter: Interactive chooser handed to commands that may prompt
        """
        self._project_root = Path(project_root)
        self._runner = CommandRunner(self._project_root)
        self._client = httpx.Client(timeout=HTTP_TIMEOUT, follow_redirects=True)

        self.docker = DockerCommands(self._client)
        self.helm = HelmCommands(self._runner, self._client)
        self.kubectl = KubectlCommands(self._runner, prompter)

    @property
    def project_root(self) -> Path:
        """Get the project root path."""
        return self._project_root


__all__ = [
    "ShellCommands",
    "CommandResult",
    "Workload",
    "DockerCommands",
    "HelmCommands",
    "KubectlCommands",
    "CommandRunner",
]
