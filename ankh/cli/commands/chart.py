"""Helm chart commands.

Commands:
    ls       - List Helm charts and their versions
    versions - List versions for a Helm chart
    inspect  - Print the templates of a Helm chart
    publish  - Package and upload the chart in the current directory
    bump     - Bump the version in the current directory's Chart.yaml
"""

from typing import Annotated

import typer
from loguru import logger
from rich.table import Table

from ankh.cli.context import CLIContext, get_cli_context
from ankh.cli.shared.console import with_error_handling
from ankh.errors import ConfigError
from ankh.utils.versions import SEMVER_PARTS

chart_app = typer.Typer(
    name="chart",
    help="Manage Helm charts",
    no_args_is_help=True,
)


def _registry(cli: CLIContext) -> str:
    """The global Helm registry, falling back to the first context that has one."""
    config = cli.load_config(ignore_config_errors=True)
    registry = config.helm_registry()
    if not registry:
        raise ConfigError(
            "No Helm registry configured",
            details="Set `helm.registry` or a context's `helm-registry-url` in your Ankh config.",
        )
    if registry != config.helm.registry:
        logger.info(f"Using Helm registry '{registry}' taken from the first Ankh context that defines one")
    return registry


@chart_app.command("ls")
@with_error_handling
def list_charts(
    ctx: typer.Context,
    num: Annotated[
        int,
        typer.Option(
            "--num",
            "-n",
            help="Number of versions to show, sorted descending by creation date. "
            "Pass zero to see all versions.",
        ),
    ] = 5,
) -> None:
    """List Helm charts and their versions."""
    cli = get_cli_context(ctx)
    charts = cli.commands.helm.list_charts(_registry(cli), num)

    table = Table(show_header=True, header_style="bold")
    table.add_column("NAME")
    table.add_column("VERSION(S)")
    for name, versions in charts.items():
        table.add_row(name, ", ".join(versions))
    cli.console.print(table)


@chart_app.command()
@with_error_handling
def versions(
    ctx: typer.Context,
    chart: Annotated[str, typer.Argument(help="The Helm chart to fetch versions for")],
) -> None:
    """List versions for a Helm chart."""
    cli = get_cli_context(ctx)
    found = cli.commands.helm.list_versions(_registry(cli), chart)
    if found:
        cli.console.out("\n".join(found))


@chart_app.command()
@with_error_handling
def inspect(
    ctx: typer.Context,
    chart: Annotated[
        str,
        typer.Argument(help="The Helm chart to inspect, passed in the `CHART[@VERSION]` format."),
    ],
) -> None:
    """Inspect a Helm chart."""
    cli = get_cli_context(ctx)
    output = cli.commands.helm.inspect(_registry(cli), chart, cli.options.data_dir)
    if output:
        cli.console.out(output)


@chart_app.command()
@with_error_handling
def publish(ctx: typer.Context) -> None:
    """Publish a Helm chart using files from the current directory."""
    cli = get_cli_context(ctx)
    published = cli.commands.helm.publish(
        _registry(cli), cli.project_root, cli.options.data_dir
    )
    cli.console.ok(f"Published {published}")


@chart_app.command()
@with_error_handling
def bump(
    ctx: typer.Context,
    semver_type: Annotated[
        str,
        typer.Argument(
            metavar="SEMVERTYPE",
            help='Which part of the semantic version (eg: x.y.z) to bump: "major", "minor", or "patch".',
        ),
    ] = "patch",
) -> None:
    """Bump a Helm chart's semantic version using Chart.yaml from the current directory."""
    cli = get_cli_context(ctx)
    if semver_type not in SEMVER_PARTS:
        raise typer.BadParameter(
            f"expected one of {', '.join(SEMVER_PARTS)}", param_hint="SEMVERTYPE"
        )
    old, new = cli.commands.helm.bump(cli.project_root, semver_type)
    cli.console.ok(f"Bumped chart version {old} => {new}")
