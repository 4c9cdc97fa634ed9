"""Ankh configuration commands.

Commands:
    init             - Create or complete the first local config source
    view             - Print the merged configuration
    get-contexts     - List available contexts
    get-environments - List available environments
"""

from pathlib import Path

import typer
from loguru import logger
from rich.table import Table

from ankh.cli.context import get_cli_context
from ankh.cli.shared.console import with_error_handling
from ankh.config import AnkhConfig, Context, dump_config, load_config, save_config, split_locators
from ankh.config.config_loader import is_remote
from ankh.errors import ConfigError

config_app = typer.Typer(
    name="config",
    help="Manage Ankh configuration",
    no_args_is_help=True,
)

SAMPLE_CONTEXT_NAME = "minikube"


def sample_context() -> Context:
    return Context(
        kube_context="minikube",
        environment_class="dev",
        resource_profile="constrained",
        release="minikube",
        helm_registry_url="https://kubernetes-charts.storage.googleapis.com",
    )


def init_config(path: Path) -> AnkhConfig:
    """Load the unmerged config at ``path`` and seed a sample context if it has none."""
    config = load_config(str(path)) if path.exists() else AnkhConfig()
    if not config.contexts:
        logger.info("Initializing `contexts` to a single sample context for kube-context `minikube`")
        config = config.model_copy(
            update={"contexts": {SAMPLE_CONTEXT_NAME: sample_context()}}
        )
    save_config(config, path)
    return config


@config_app.command()
@with_error_handling
def init(ctx: typer.Context) -> None:
    """Initialize Ankh configuration."""
    cli = get_cli_context(ctx)
    local = [loc for loc in split_locators(cli.options.ankh_config) if not is_remote(loc)]
    if not local:
        raise ConfigError("No local Ankh config path to initialize")

    path = Path(local[0]).expanduser()
    init_config(path)
    cli.console.ok(f"Wrote Ankh config to {path}")


@config_app.command()
@with_error_handling
def view(ctx: typer.Context) -> None:
    """View merged Ankh configuration."""
    cli = get_cli_context(ctx)
    config = cli.load_config(ignore_config_errors=True)
    cli.console.out(dump_config(config).rstrip("\n"))


@config_app.command("get-contexts")
@with_error_handling
def get_contexts(ctx: typer.Context) -> None:
    """Get available contexts."""
    cli = get_cli_context(ctx)
    config = cli.load_config(ignore_config_errors=True)

    table = Table(show_header=True, header_style="bold", box=None)
    for column in (
        "NAME",
        "RELEASE",
        "ENVIRONMENT-CLASS",
        "RESOURCE-PROFILE",
        "KUBE-CONTEXT/SERVER",
        "SOURCE",
    ):
        table.add_column(column)
    for name in sorted(config.contexts):
        context = config.contexts[name]
        table.add_row(
            name,
            context.release,
            context.environment_class,
            context.resource_profile,
            context.target,
            context.source,
        )
    cli.console.print(table)


@config_app.command("get-environments")
@with_error_handling
def get_environments(ctx: typer.Context) -> None:
    """Get available environments."""
    cli = get_cli_context(ctx)
    config = cli.load_config(ignore_config_errors=True)

    table = Table(show_header=True, header_style="bold", box=None)
    for column in ("NAME", "CONTEXTS", "SOURCE"):
        table.add_column(column)
    for name in sorted(config.environments):
        environment = config.environments[name]
        table.add_row(name, ",".join(environment.contexts), environment.source)
    cli.console.print(table)
