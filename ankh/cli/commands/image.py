"""Docker image commands.

Commands:
    tags - List tags for a Docker image
    ls   - List images for a Docker registry
"""

from typing import Annotated

import typer
from rich.table import Table

from ankh.cli.context import get_cli_context
from ankh.cli.shared.console import with_error_handling

image_app = typer.Typer(
    name="image",
    help="Manage Docker images",
    no_args_is_help=True,
)


@image_app.command()
@with_error_handling
def tags(
    ctx: typer.Context,
    image: Annotated[str, typer.Argument(help="The docker image to fetch tags for")],
) -> None:
    """List tags for a Docker image."""
    cli = get_cli_context(ctx)
    config = cli.load_config(ignore_config_errors=True)
    found = cli.commands.docker.list_tags(config.docker.registry, image, descending=False)
    if found:
        cli.console.out("\n".join(found))


@image_app.command("ls")
@with_error_handling
def list_images(
    ctx: typer.Context,
    num: Annotated[
        int,
        typer.Option(
            "--num",
            "-n",
            help="Number of tags to show, fuzzy-sorted descending by semantic version. "
            "Pass zero to see all versions.",
        ),
    ] = 5,
) -> None:
    """List images for a Docker repository."""
    cli = get_cli_context(ctx)
    config = cli.load_config(ignore_config_errors=True)
    images = cli.commands.docker.list_images(config.docker.registry, num)

    table = Table(show_header=True, header_style="bold")
    table.add_column("NAME")
    table.add_column("TAGS")
    for name, image_tags in images.items():
        table.add_row(name, ", ".join(image_tags))
    cli.console.print(table)
