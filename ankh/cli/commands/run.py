"""Ankh file pipeline commands.

Each command renders the charts of an Ankh file (and its dependencies)
for the selected context or environment, then hands the rendered output
to one operation.

Commands:
    explain  - Show the commands an apply would run
    apply    - Apply rendered objects to the cluster
    rollback - Undo the last rollout of Deployments/StatefulSets
    diff     - Diff rendered objects against live objects
    get      - Get live objects for rendered objects
    pods     - Get pods for rendered Deployments/StatefulSets
    logs     - Get logs for those pods
    exec     - Exec a command on one of those pods
    lint     - Check rendered objects for mistakes
    template - Print rendered objects
"""

from typing import Annotated

import typer
from loguru import logger

from ankh.cli.context import get_cli_context
from ankh.cli.deployment.constants import (
    DEFAULT_ANKH_FILE,
    DEFAULT_EXEC_COMMAND,
    DEFAULT_LOG_TAIL,
    ROLLBACK_FILTERS,
    Mode,
)
from ankh.cli.deployment.executor import AnkhExecutor
from ankh.cli.shared.console import with_error_handling
from ankh.errors import AnkhError

FILTER_HELP = (
    "Kubernetes object kinds to include for the action. The entries in this list are "
    "case insensitive. Any object whose `kind:` does not match this filter will be "
    "excluded from the action."
)

ROLLBACK_WARNING = (
    "Rollback is not a transactional operation.\n"
    "\n"
    "Rollback uses `kubectl rollout undo` which only rolls back ReplicaSet specs under "
    "Deployment and StatefulSet objects.\n"
    "\n"
    "This design has two notable limitations in the context of Ankh, Helm, and templated "
    "object manifests:\n"
    "1) Manifest attributes such as labels are NOT rolled back. This can be problematic "
    "for use cases that visually track object history using labels or annotations. It is "
    "almost certain that the resulting Deployment and ReplicaSet will appear inconsistent.\n"
    "2) Other Chart objects, such as ConfigMaps and Services, are by design not rolled "
    "back. This can be problematic for use cases that attempt to apply charts atomically, "
    "where the Deployment spec has a hard dependency on an associated Service or "
    "ConfigMap. Rollout undo will NOT do the right thing in this case. You MUST "
    "`ankh ... apply` using the co-dependent chart and tag value in order to converge "
    "back to a correct state.\n"
    "\n"
    "If you already know the chart version and associated tag values (eg: `--set ...`) "
    "that you want to converge to, use "
    "`ankh --set $... apply --chart $chartName@$prevVersion` instead."
)

FilenameOption = Annotated[str, typer.Option("--filename", "-f", help="Config file name")]
ChartOption = Annotated[
    str,
    typer.Option("--chart", help="Limits the command to only the specified chart (CHART[@VERSION])"),
]
FilterOption = Annotated[list[str] | None, typer.Option("--filter", help=FILTER_HELP)]
ExtraArgs = Annotated[
    list[str] | None,
    typer.Argument(
        help="Extra arguments to pass to `kubectl`, which can be specified after `--` "
        "eg: `ankh ... get -- -o json`",
    ),
]


def _execute(ctx: typer.Context, mode: Mode, **kwargs: object) -> None:
    cli = get_cli_context(ctx)
    execution = cli.execution_context(mode, **kwargs)  # type: ignore[arg-type]
    AnkhExecutor(execution, cli.commands, cli.console, emit=cli.console.out).execute()


@with_error_handling
def explain(
    ctx: typer.Context,
    filename: FilenameOption = DEFAULT_ANKH_FILE,
    chart: ChartOption = "",
) -> None:
    """Explain how an Ankh file would be applied to a Kubernetes cluster."""
    _execute(ctx, Mode.EXPLAIN, ankh_file_path=filename, chart=chart)


@with_error_handling
def apply(
    ctx: typer.Context,
    filename: FilenameOption = DEFAULT_ANKH_FILE,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Perform a dry-run and don't actually apply anything to a cluster",
        ),
    ] = False,
    chart: ChartOption = "",
    filters: FilterOption = None,
) -> None:
    """Apply an Ankh file to a Kubernetes cluster."""
    _execute(
        ctx,
        Mode.APPLY,
        ankh_file_path=filename,
        dry_run=dry_run,
        chart=chart,
        filters=filters or [],
    )


@with_error_handling
def rollback(
    ctx: typer.Context,
    filename: FilenameOption = DEFAULT_ANKH_FILE,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Perform a dry-run and don't actually rollback anything to a cluster",
        ),
    ] = False,
    chart: ChartOption = "",
) -> None:
    """Rollback deployments associated with a templated Ankh file from Kubernetes."""
    cli = get_cli_context(ctx)
    confirmed = cli.console.confirm_selection(
        ROLLBACK_WARNING,
        "Are you certain that you want to run `kubectl rollout undo` to rollback to a "
        "previous ReplicaSet spec? Select OK to proceed.",
    )
    if not confirmed:
        raise AnkhError("Aborting")

    _execute(
        ctx,
        Mode.ROLLBACK,
        ankh_file_path=filename,
        dry_run=dry_run,
        chart=chart,
        filters=ROLLBACK_FILTERS,
    )


@with_error_handling
def diff(
    ctx: typer.Context,
    filename: FilenameOption = DEFAULT_ANKH_FILE,
    chart: ChartOption = "",
    filters: FilterOption = None,
) -> None:
    """Diff against live objects associated with a templated Ankh file from Kubernetes."""
    _execute(ctx, Mode.DIFF, ankh_file_path=filename, chart=chart, filters=filters or [])


@with_error_handling
def get(
    ctx: typer.Context,
    filename: FilenameOption = DEFAULT_ANKH_FILE,
    chart: ChartOption = "",
    filters: FilterOption = None,
    extra: ExtraArgs = None,
) -> None:
    """Get objects associated with a templated Ankh file from Kubernetes."""
    for arg in extra or []:
        logger.debug(f"Appending extra arg: {arg}")
    _execute(
        ctx,
        Mode.GET,
        ankh_file_path=filename,
        chart=chart,
        filters=filters or [],
        extra_args=extra or [],
    )


@with_error_handling
def pods(
    ctx: typer.Context,
    filename: FilenameOption = DEFAULT_ANKH_FILE,
    watch: Annotated[
        bool, typer.Option("--watch", "-w", help="Watch for updates (ie: pass -w to kubectl)")
    ] = False,
    describe: Annotated[
        bool,
        typer.Option(
            "--describe",
            "-d",
            help="Use `kubectl describe ...` instead of `kubectl get -o wide ...` for pods",
        ),
    ] = False,
    chart: ChartOption = "",
    extra: ExtraArgs = None,
) -> None:
    """Get pods associated with a templated Ankh file from Kubernetes."""
    extra_args = list(extra or [])
    if watch:
        logger.debug("Appending watch args as extra args")
        extra_args.append("-w")
    _execute(
        ctx,
        Mode.PODS,
        ankh_file_path=filename,
        chart=chart,
        describe=describe,
        extra_args=extra_args,
    )


def logs_extra_args(
    container_option: str,
    container_arg: str,
    *,
    tail: int = DEFAULT_LOG_TAIL,
    follow: bool = False,
    previous: bool = False,
) -> list[str]:
    """Build the kubectl logs arguments from the logs command options.

    Raises:
        AnkhError: If the container option and argument disagree
    """
    extra_args = []
    if follow:
        extra_args.append("-f")
    if previous:
        extra_args.append("--previous")

    if container_option and container_arg and container_option != container_arg:
        raise AnkhError(
            f"Conflicting positional argument '{container_arg}' and container option (-c) "
            f"'{container_option}'. Please ensure that these are the same, or only use one."
        )
    container = container_option or container_arg
    if container:
        extra_args.extend(["-c", container])
    if tail > 0:
        extra_args.extend(["--tail", str(tail)])
    return extra_args


@with_error_handling
def logs(
    ctx: typer.Context,
    container_arg: Annotated[
        str,
        typer.Argument(
            metavar="CONTAINER",
            help="The container to get logs for. Required when there is more than one "
            "container running in the pods associated with the templated Ankh file.",
        ),
    ] = "",
    container: Annotated[
        str, typer.Option("--container", "-c", help="The container to get logs for.")
    ] = "",
    tail: Annotated[
        int,
        typer.Option(
            "--tail",
            "-t",
            help="The number of most recent log lines to see. Pass 0 to receive all log "
            "lines available from Kubernetes, which is subject to its own retention policy.",
        ),
    ] = DEFAULT_LOG_TAIL,
    follow: Annotated[bool, typer.Option("-f", help="Follow logs")] = False,
    previous: Annotated[
        bool,
        typer.Option(
            "--previous",
            "-p",
            help="Get logs for the previously terminated container, if any",
        ),
    ] = False,
    filename: Annotated[str, typer.Option("--filename", help="Config file name")] = DEFAULT_ANKH_FILE,
    chart: ChartOption = "",
) -> None:
    """Get logs for pods associated with a templated Ankh file from Kubernetes."""
    extra_args = logs_extra_args(
        container, container_arg, tail=tail, follow=follow, previous=previous
    )
    logger.debug(f"Using extraArgs {extra_args}")
    _execute(ctx, Mode.LOGS, ankh_file_path=filename, chart=chart, extra_args=extra_args)


@with_error_handling
def exec_(
    ctx: typer.Context,
    passthrough: Annotated[
        list[str] | None,
        typer.Argument(
            metavar="PASSTHROUGH...",
            help="Pass-through arguments to provide to `kubectl` after `exec`, which can be "
            "specified after `--` eg: `ankh ... exec -- ls -la`",
        ),
    ] = None,
    container: Annotated[
        str,
        typer.Option(
            "--container",
            "-c",
            help="The container to exec on. Required when there is more than one container "
            "running in the pods associated with the templated Ankh file.",
        ),
    ] = "",
    filename: Annotated[str, typer.Option("--filename", help="Config file name")] = DEFAULT_ANKH_FILE,
    chart: ChartOption = "",
) -> None:
    """Exec a command on pods associated with a templated Ankh file from Kubernetes."""
    extra_args = ["-c", container] if container else []
    _execute(
        ctx,
        Mode.EXEC,
        ankh_file_path=filename,
        chart=chart,
        extra_args=extra_args,
        passthrough_args=list(passthrough or DEFAULT_EXEC_COMMAND),
    )


@with_error_handling
def lint(
    ctx: typer.Context,
    filename: FilenameOption = DEFAULT_ANKH_FILE,
    chart: ChartOption = "",
    filters: FilterOption = None,
) -> None:
    """Lint an Ankh file, checking for possible errors or mistakes."""
    _execute(ctx, Mode.LINT, ankh_file_path=filename, chart=chart, filters=filters or [])


@with_error_handling
def template(
    ctx: typer.Context,
    filename: FilenameOption = DEFAULT_ANKH_FILE,
    chart: ChartOption = "",
    filters: FilterOption = None,
) -> None:
    """Output the results of templating an Ankh file."""
    _execute(ctx, Mode.TEMPLATE, ankh_file_path=filename, chart=chart, filters=filters or [])


def register(app: typer.Typer) -> None:
    """Add the pipeline commands to the top-level application."""
    app.command("explain")(explain)
    app.command("apply")(apply)
    app.command("rollback")(rollback)
    app.command("diff")(diff)
    app.command("get")(get)
    app.command("pods")(pods)
    app.command("logs")(logs)
    app.command("exec")(exec_)
    app.command("lint")(lint)
    app.command("template")(template)
