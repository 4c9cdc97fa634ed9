"""Kubectl command abstractions.

Every operation receives the rendered manifest for one namespace. Object
level operations (apply, diff, get) pipe the manifest to kubectl; workload
operations (rollback, pods, logs, exec) act on the Deployments and
StatefulSets found in it.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from typing import TYPE_CHECKING

import yaml
from loguru import logger

from ankh.cli.deployment.constants import WORKLOAD_KINDS
from ankh.errors import ExecutionError

from .types import CommandResult, Workload

if TYPE_CHECKING:
    from ankh.cli.context import ExecutionContext
    from ankh.utils.console_like import Prompter

    from .runner import CommandRunner

# Flags that keep kubectl attached to the terminal
STREAMING_FLAGS = frozenset({"-w", "--watch", "-f", "--follow"})


def find_workloads(manifest: str) -> list[Workload]:
    """Deployments and StatefulSets in a rendered manifest, in document order."""
    workloads = []
    try:
        documents = list(yaml.safe_load_all(manifest))
    except yaml.YAMLError as e:
        raise ExecutionError(f"Unable to parse rendered manifest: {e}") from e

    for obj in documents:
        if not isinstance(obj, dict):
            continue
        kind = str(obj.get("kind", "")).lower()
        if kind not in WORKLOAD_KINDS:
            continue
        name = (obj.get("metadata") or {}).get("name", "")
        selector = ((obj.get("spec") or {}).get("selector") or {}).get("matchLabels") or {}
        workloads.append(
            Workload(
                kind=kind,
                name=name,
                selector=",".join(f"{k}={v}" for k, v in selector.items()),
            )
        )
    return workloads


class KubectlCommands:
    """Kubectl-related shell commands.

    Provides operations for:
    - Object operations on a manifest (apply, diff, get, explain)
    - Workload operations (rollback, pods, logs, exec)
    - Client version queries
    """

    def __init__(self, runner: CommandRunner, prompter: Prompter | None = None) -> None:
        """Initialize kubectl commands.

        Args:
            runner: Command runner for executing shell commands
            prompter: Used by exec to pick a pod when several match
        """
        self._runner = runner
        self._prompter = prompter

    def version(self) -> str:
        """Return the kubectl client version string."""
        result = self._runner.run(["kubectl", "version", "--client"])
        if not result.success:
            raise ExecutionError("Failed to get kubectl version info", details=result.output)
        return result.stdout

    def base_command(self, ctx: ExecutionContext, namespace: str) -> list[str]:
        cmd = ["kubectl"]
        if ctx.kube_config_path:
            cmd.extend(["--kubeconfig", ctx.kube_config_path])
        if ctx.context.kube_context:
            cmd.extend(["--context", ctx.context.kube_context])
        elif ctx.context.kube_server:
            cmd.extend(["--server", ctx.context.kube_server])
        if namespace:
            cmd.extend(["--namespace", namespace])
        return cmd

    def _run(
        self,
        cmd: Sequence[str],
        *,
        manifest: str | None = None,
        interactive: bool = False,
        ok_codes: Sequence[int] = (0,),
    ) -> str:
        result: CommandResult = self._runner.run(
            cmd, input_data=manifest, capture_output=not interactive
        )
        if result.returncode not in ok_codes:
            raise ExecutionError(
                f"Error running `{shlex.join(cmd)}` (exit status {result.returncode})",
                details=result.output or None,
            )
        return result.stdout.rstrip("\n")

    # =========================================================================
    # Object Operations
    # =========================================================================

    def apply_command(self, ctx: ExecutionContext, namespace: str) -> list[str]:
        cmd = [*self.base_command(ctx, namespace), "apply", "-f", "-"]
        if ctx.dry_run:
            cmd.append("--dry-run=client")
        return cmd

    def apply(self, ctx: ExecutionContext, manifest: str, namespace: str) -> str:
        return self._run(self.apply_command(ctx, namespace), manifest=manifest)

    def explain(self, ctx: ExecutionContext, manifest: str, namespace: str) -> str:
        """The apply command that would receive the rendered manifest."""
        return shlex.join(self.apply_command(ctx, namespace))

    def diff(self, ctx: ExecutionContext, manifest: str, namespace: str) -> str:
        """Diff against live objects; exit status 1 means differences were found."""
        cmd = [*self.base_command(ctx, namespace), "diff", "-f", "-"]
        return self._run(cmd, manifest=manifest, ok_codes=(0, 1))

    def get(self, ctx: ExecutionContext, manifest: str, namespace: str) -> str:
        cmd = [*self.base_command(ctx, namespace), "get", "-f", "-", *ctx.extra_args]
        return self._run(
            cmd, manifest=manifest, interactive=bool(STREAMING_FLAGS & set(ctx.extra_args))
        )

    # =========================================================================
    # Workload Operations
    # =========================================================================

    def _workloads(self, manifest: str) -> list[Workload]:
        workloads = find_workloads(manifest)
        if not workloads:
            logger.warning("No Deployment or StatefulSet objects found in rendered output")
        return workloads

    def rollback(self, ctx: ExecutionContext, manifest: str, namespace: str) -> str:
        outputs = []
        for workload in self._workloads(manifest):
            cmd = [
                *self.base_command(ctx, namespace),
                "rollout",
                "undo",
                f"{workload.kind}/{workload.name}",
            ]
            if ctx.dry_run:
                cmd.append("--dry-run=client")
            outputs.append(self._run(cmd))
        return "\n".join(o for o in outputs if o)

    def pods(self, ctx: ExecutionContext, manifest: str, namespace: str) -> str:
        interactive = bool(STREAMING_FLAGS & set(ctx.extra_args))
        outputs = []
        for workload in self._workloads(manifest):
            if ctx.describe:
                action = ["describe", "pods", "-l", workload.selector]
            else:
                action = ["get", "pods", "-o", "wide", "-l", workload.selector]
            cmd = [*self.base_command(ctx, namespace), *action, *ctx.extra_args]
            outputs.append(self._run(cmd, interactive=interactive))
        return "\n".join(o for o in outputs if o)

    def logs(self, ctx: ExecutionContext, manifest: str, namespace: str) -> str:
        interactive = bool(STREAMING_FLAGS & set(ctx.extra_args))
        outputs = []
        for workload in self._workloads(manifest):
            cmd = [*self.base_command(ctx, namespace), "logs", "-l", workload.selector]
            cmd.extend(ctx.extra_args)
            outputs.append(self._run(cmd, interactive=interactive))
        return "\n".join(o for o in outputs if o)

    def pod_names(self, ctx: ExecutionContext, manifest: str, namespace: str) -> list[str]:
        names: list[str] = []
        for workload in self._workloads(manifest):
            cmd = [
                *self.base_command(ctx, namespace),
                "get",
                "pods",
                "-l",
                workload.selector,
                "-o",
                "jsonpath={.items[*].metadata.name}",
            ]
            names.extend(self._run(cmd).split())
        return names

    def exec(self, ctx: ExecutionContext, manifest: str, namespace: str) -> str:
        """Run the pass-through command on one pod, prompting when several match."""
        pods = self.pod_names(ctx, manifest, namespace)
        if not pods:
            raise ExecutionError("No pods found for the Deployment/StatefulSet objects in this chart")

        pod = pods[0]
        if len(pods) > 1:
            if self._prompter is None:
                raise ExecutionError(
                    f"Found {len(pods)} pods to exec on and no way to choose",
                    details="\n".join(pods),
                )
            pod = self._prompter.select_one(pods, "Select a pod")

        cmd = [
            *self.base_command(ctx, namespace),
            "exec",
            "-it",
            pod,
            *ctx.extra_args,
            "--",
            *ctx.passthrough_args,
        ]
        return self._run(cmd, interactive=True)
