"""Main CLI application module.

This module provides the main entry point for the Ankh CLI.

Command Groups:
- explain, apply, rollback, diff, get, pods, logs, exec, lint, template:
  Ankh file pipeline commands
- image: Docker registry images
- chart: Helm charts
- config: Ankh configuration
"""

from typing import Annotated

import typer
from loguru import logger

from ankh import __version__
from ankh.utils.logging import configure_logging
from ankh.utils.paths import (
    default_ankh_config_path,
    default_data_dir,
    default_kube_config_path,
    run_data_dir,
)

from .commands import chart_app, config_app, image_app, register_run_commands
from .context import GlobalOptions, build_cli_context, get_cli_context, parse_set_values
from .shared.console import console, with_error_handling
from .signals import forwarder

# Create the main CLI application
app = typer.Typer(
    help="Another Kubernetes Helper",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose debug mode")] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Quiet mode. Critical logging only. The quiet option overrides the verbose option.",
        ),
    ] = False,
    ignore_config_errors: Annotated[
        bool,
        typer.Option(
            "--ignore-config-errors",
            help="Ignore certain configuration errors that have defined, but potentially "
            "dangerous behavior.",
        ),
    ] = False,
    ankhconfig: Annotated[
        str | None,
        typer.Option(
            "--ankhconfig",
            envvar="ANKHCONFIG",
            help="The ankh config to use. ANKHCONFIG may be set to include a list of ankh "
            "configs to merge. Similar behavior to kubectl's KUBECONFIG.",
        ),
    ] = None,
    kubeconfig: Annotated[
        str | None,
        typer.Option(
            "--kubeconfig",
            envvar="KUBECONFIG",
            help="The kube config to use when invoking kubectl",
        ),
    ] = None,
    release: Annotated[
        str,
        typer.Option(
            "--release",
            "-r",
            envvar="ANKHRELEASE",
            help="The release to use. Must provide this, or have a release already present "
            "in the target context",
        ),
    ] = "",
    context: Annotated[
        str,
        typer.Option(
            "--context",
            "-c",
            envvar="ANKHCONTEXT",
            help="The context to use. Must provide this, or an environment via --environment",
        ),
    ] = "",
    environment: Annotated[
        str,
        typer.Option(
            "--environment",
            "-e",
            envvar="ANKHENVIRONMENT",
            help="The environment to use. Must provide this, or an individual context via "
            "`--context`",
        ),
    ] = "",
    namespace: Annotated[
        str | None,
        typer.Option(
            "--namespace",
            "-n",
            help="The namespace to use with kubectl. Optional. Overrides any namespace "
            "provided in an Ankh file.",
        ),
    ] = None,
    datadir: Annotated[
        str | None,
        typer.Option(
            "--datadir",
            envvar="ANKHDATADIR",
            help="The data directory for Ankh template history",
        ),
    ] = None,
    set_values: Annotated[
        list[str] | None,
        typer.Option("--set", help="Variables passed through to helm via --set"),
    ] = None,
) -> None:
    """Another Kubernetes Helper."""
    configure_logging(verbose=verbose, quiet=quiet)
    forwarder.install()

    if context and environment:
        console.handle_error(
            "Must not provide both `--context` and `--environment`, "
            "because an environment maps to one or more contexts."
        )

    options = GlobalOptions(
        verbose=verbose and not quiet,
        quiet=quiet,
        ignore_config_errors=ignore_config_errors,
        ankh_config=ankhconfig or default_ankh_config_path(),
        kube_config=kubeconfig or default_kube_config_path(),
        release=release,
        context=context,
        environment=environment,
        namespace=namespace,
        data_dir=run_data_dir(datadir or default_data_dir()),
        set_values=parse_set_values(set_values or []),
    )
    logger.debug(f"Using KubeConfigPath {options.kube_config}")
    ctx.obj = build_cli_context(options)


register_run_commands(app)
app.add_typer(image_app, name="image")
app.add_typer(chart_app, name="chart")
app.add_typer(config_app, name="config")


@app.command()
@with_error_handling
def version(ctx: typer.Context) -> None:
    """Show version info."""
    cli = get_cli_context(ctx)
    logger.info("Ankh version info:")
    cli.console.out(__version__)
    logger.info("`helm version --short` output:")
    cli.console.out(cli.commands.helm.version().rstrip("\n"))
    logger.info("`kubectl version --client` output:")
    cli.console.out(cli.commands.kubectl.version().rstrip("\n"))


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
