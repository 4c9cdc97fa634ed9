"""Per-mode handling of a rendered namespace group.

Each ``Mode`` maps to exactly one handler. Handlers receive the rendered
(and possibly filtered) manifest for one namespace and return a
``DispatchResult`` whose output the caller prints.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from ankh.cli.deployment.constants import Mode
from ankh.errors import ExecutionError, LintError

if TYPE_CHECKING:
    from ankh.cli.context import ExecutionContext
    from ankh.cli.deployment.shell_commands import ShellCommands

Handler = Callable[["ExecutionContext", str, str], "DispatchResult"]

DIFF_VERSION_WARNING = (
    "The `diff` feature entered alpha in kubectl v1.9.0, and seems to work best at "
    "version v1.12.1. Your results may vary. Current kubectl version string is `{version}`"
)


@dataclass(frozen=True)
class DispatchResult:
    """Uniform handler result; empty output prints nothing."""

    output: str = ""


def format_explain(helm_output: str, kubectl_output: str) -> str:
    """Join rendering commands and the kubectl command into one shell pipeline."""
    rendered = helm_output.strip().removesuffix("&& \\").strip()
    return f"({rendered}) | \\\n{kubectl_output}"


class ModeDispatcher:
    """Runs the operation for the execution's mode on one namespace group."""

    def __init__(self, commands: ShellCommands) -> None:
        self.commands = commands
        self._kubectl_version: str | None = None
        self._handlers: dict[Mode, Handler] = {
            Mode.TEMPLATE: self._template,
            Mode.LINT: self._lint,
            Mode.APPLY: self._kubectl(self.commands.kubectl.apply),
            Mode.DIFF: self._diff,
            Mode.ROLLBACK: self._kubectl(self.commands.kubectl.rollback),
            Mode.GET: self._kubectl(self.commands.kubectl.get),
            Mode.PODS: self._kubectl(self.commands.kubectl.pods),
            Mode.EXEC: self._kubectl(self.commands.kubectl.exec),
            Mode.LOGS: self._kubectl(self.commands.kubectl.logs),
            Mode.EXPLAIN: self._explain,
        }

    def dispatch(self, ctx: ExecutionContext, manifest: str, namespace: str) -> DispatchResult:
        return self._handlers[ctx.mode](ctx, manifest, namespace)

    @property
    def kubectl_version(self) -> str:
        """Kubectl client version, queried once."""
        if self._kubectl_version is None:
            self._kubectl_version = self.commands.kubectl.version().strip()
            logger.debug(f"Using kubectl version: {self._kubectl_version}")
        return self._kubectl_version

    def _kubectl(self, operation: Callable[[ExecutionContext, str, str], str]) -> Handler:
        def handler(ctx: ExecutionContext, manifest: str, namespace: str) -> DispatchResult:
            return DispatchResult(operation(ctx, manifest, namespace))

        return handler

    def _template(self, ctx: ExecutionContext, manifest: str, namespace: str) -> DispatchResult:
        return DispatchResult(manifest)

    def _lint(self, ctx: ExecutionContext, manifest: str, namespace: str) -> DispatchResult:
        errors = self.commands.helm.lint(manifest, namespace)
        if errors:
            for error in errors:
                logger.warning(error)
            raise LintError(errors)
        logger.info("No issues.")
        return DispatchResult()

    def _diff(self, ctx: ExecutionContext, manifest: str, namespace: str) -> DispatchResult:
        try:
            return DispatchResult(self.commands.kubectl.diff(ctx, manifest, namespace))
        except ExecutionError:
            logger.warning(DIFF_VERSION_WARNING.format(version=self.kubectl_version))
            raise

    def _explain(self, ctx: ExecutionContext, manifest: str, namespace: str) -> DispatchResult:
        kubectl_output = self.commands.kubectl.explain(ctx, manifest, namespace)
        return DispatchResult(format_explain(manifest, kubectl_output))
