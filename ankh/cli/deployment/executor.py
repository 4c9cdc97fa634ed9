"""Execution driver for an Ankh file.

The driver expands the requested context or environment, resolves every
chart of the root Ankh file and its dependencies up front, and then, per
context, renders and dispatches each namespace group.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ankh.cli.deployment.descriptor import AnkhFile, load_root_ankh_file, parse_ankh_file
from ankh.cli.deployment.modes import ModeDispatcher
from ankh.cli.deployment.output_filter import filter_output
from ankh.cli.deployment.resolution import ChartResolver, ResolvedAnkhFile, ResolvedChart
from ankh.config.resolver import contexts_for_run, switch_context
from ankh.errors import DescriptorError

if TYPE_CHECKING:
    from ankh.cli.context import ExecutionContext
    from ankh.cli.deployment.shell_commands import ShellCommands
    from ankh.utils.console_like import Prompter


def group_charts(
    charts: Sequence[ResolvedChart], namespace_override: str | None = None
) -> list[tuple[str, list[ResolvedChart]]]:
    """Group charts by namespace.

    With an override every chart lands in one group keyed by the override.
    Otherwise groups follow the resolved namespaces in lexicographic order.
    """
    if namespace_override is not None:
        return [(namespace_override, list(charts))]

    groups: dict[str, list[ResolvedChart]] = {}
    for chart in charts:
        groups.setdefault(chart.namespace, []).append(chart)
    return [(namespace, groups[namespace]) for namespace in sorted(groups)]


def describe_execution(ctx: ExecutionContext) -> str:
    """One-line summary of what is about to happen and where."""
    context = ctx.context
    release = f' release "{context.release}"' if context.release else ""
    dry_run = " (dry run)" if ctx.dry_run else ""
    target = f' using kube-context "{context.kube_context}"'
    if context.kube_server:
        target = f' to kube-server "{context.kube_server}"'
    return (
        f"{ctx.mode.action}{release}{dry_run}{target} with environment class "
        f'"{context.environment_class}" and resource profile "{context.resource_profile}"'
    )


def _describe_group(charts: Sequence[ResolvedChart], namespace: str, extra: str = "") -> str:
    plural = "" if len(charts) == 1 else "s"
    names = ", ".join(chart.name for chart in charts)
    return f'Using {extra}namespace "{namespace}" for {len(charts)} chart{plural} [ {names} ]'


class AnkhExecutor:
    """Runs one invocation of a pipeline mode."""

    def __init__(
        self,
        ctx: ExecutionContext,
        commands: ShellCommands,
        prompter: Prompter,
        emit: Callable[[str], None] = print,
    ) -> None:
        self.ctx = ctx
        self.commands = commands
        self.prompter = prompter
        self.emit = emit
        self.dispatcher = ModeDispatcher(commands)
        self._helm_version: str | None = None

    def execute(self) -> None:
        """Resolve the Ankh file once, then run it on every selected context.

        Every context of an environment is switched to and validated before
        the first one runs. An invalid context therefore stops the whole run
        up front instead of failing part way through the environment.
        """
        ctx = self.ctx
        root = load_root_ankh_file(ctx.ankh_file_path, ctx.chart)

        names = contexts_for_run(ctx.config, ctx.context_name, ctx.environment)
        run_contexts = [
            ctx.with_context(
                name,
                switch_context(
                    ctx.config,
                    name,
                    release=ctx.release,
                    ignore_errors=ctx.ignore_context_and_env,
                ),
            )
            for name in names
        ]
        if not run_contexts:
            logger.warning(f'Environment "{ctx.environment}" has no contexts, nothing to do')
            return

        planned = self.plan(root, self.build_resolver(run_contexts[0]))

        for run_ctx in run_contexts:
            if ctx.environment:
                logger.info(
                    f'Beginning to operate on context "{run_ctx.context_name}" '
                    f'in environment "{ctx.environment}"'
                )
            self.run(run_ctx, planned)
            if ctx.environment:
                logger.info(
                    f'Finished with context "{run_ctx.context_name}" '
                    f'in environment "{ctx.environment}"'
                )

    def build_resolver(self, ctx: ExecutionContext) -> ChartResolver:
        helm_registry = ctx.helm_registry
        docker_registry = ctx.config.docker.registry
        return ChartResolver(
            mode=ctx.mode,
            prompter=self.prompter,
            list_versions=lambda chart: self.commands.helm.list_versions(helm_registry, chart),
            list_tags=lambda image: self.commands.docker.list_tags(docker_registry, image),
            helm_set_values=ctx.helm_set_values,
            default_tag_value_name=ctx.config.helm.tag_value_name,
            namespace_override=ctx.namespace,
            ignore_config_errors=ctx.ignore_config_errors,
        )

    def plan(
        self,
        ankh_file: AnkhFile,
        resolver: ChartResolver,
        _stack: tuple[str, ...] = (),
    ) -> ResolvedAnkhFile:
        """Resolve an Ankh file and, depth-first, all of its dependencies.

        Raises:
            DescriptorError: If a dependency is unreadable or dependencies
                             form a cycle
        """
        key = str(Path(ankh_file.path).resolve()) if ankh_file.path else ""
        if key in _stack:
            cycle = " -> ".join((*_stack[_stack.index(key) :], key))
            raise DescriptorError(f"Dependency cycle detected between Ankh files: {cycle}")

        charts = resolver.resolve_all(ankh_file)
        dependencies = []
        for path in ankh_file.dependency_paths():
            dependency = parse_ankh_file(path)
            dependencies.append(self.plan(dependency, resolver, (*_stack, key)))

        return ResolvedAnkhFile(
            path=ankh_file.path,
            charts=charts,
            dependencies=tuple(dependencies),
            namespace=ankh_file.namespace,
        )

    def run(self, ctx: ExecutionContext, planned: ResolvedAnkhFile, *, root: bool = True) -> None:
        """Execute dependencies first, then the file's own charts."""
        for dependency in planned.dependencies:
            logger.info(f"Satisfying dependency: {dependency.path}")
            self.run(ctx, dependency, root=False)
            logger.info(f"Finished satisfying dependency: {dependency.path}")

        if planned.charts:
            self.execute_ankh_file(ctx, planned)
        elif root and not planned.dependencies:
            logger.warning(
                f"No charts nor dependencies specified in Ankh file {ctx.ankh_file_path}, "
                "nothing to do"
            )

    def execute_ankh_file(self, ctx: ExecutionContext, planned: ResolvedAnkhFile) -> None:
        logger.info(describe_execution(ctx))

        if self._helm_version is None:
            self._helm_version = self.commands.helm.version().strip()
            logger.debug(f"Using helm version: {self._helm_version}")

        extra = "command-line override " if ctx.namespace is not None else ""
        for namespace, charts in group_charts(planned.charts, ctx.namespace):
            logger.info(_describe_group(charts, namespace, extra))
            self.execute_group(ctx, charts, namespace)

    def execute_group(
        self, ctx: ExecutionContext, charts: Sequence[ResolvedChart], namespace: str
    ) -> None:
        manifest = self.commands.helm.template(ctx, charts, namespace)
        if ctx.filters:
            logger.debug(f"Filtering with inclusive list {list(ctx.filters)}")
            manifest = filter_output(manifest, ctx.filters)

        result = self.dispatcher.dispatch(ctx, manifest, namespace)
        if result.output:
            self.emit(result.output)
