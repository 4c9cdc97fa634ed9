"""Shared console output and prompting for CLI commands."""

from collections.abc import Callable, Sequence

import typer
from rich.console import Console, ConsoleRenderable
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt

from ankh.cli.signals import forwarder
from ankh.errors import AnkhError


class CLIConsole:
    """Rich console wrapper for consistent CLI output."""

    def __init__(self) -> None:
        """Initialize the CLI console."""
        self.console = Console()

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        self.console.print(msg)

    def out(self, text: str) -> None:
        """Print command output verbatim (manifests, kubectl output)."""
        self.console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]❌[/red] {msg}")

    def handle_error(
        self, message: str, details: str | None = None, exit_code: int = 1
    ) -> None:
        """Handle an error by printing a message and exiting.

        Args:
            message: Error message to display
            details: Optional additional details
            exit_code: Exit code to use
        """
        self.error(f"[bold red]{escape(message)}[/bold red]")
        if details:
            self.console.print(Panel(escape(details), title="Details", border_style="red"))
        raise typer.Exit(exit_code)

    def select_one(self, options: Sequence[str], prompt: str) -> str:
        """Prompt user to select one of ``options``; the first is the default.

        Raises:
            AnkhError: If there is nothing to select or no input is available
        """
        if not options:
            raise AnkhError(f"Nothing to select for: {prompt}")

        self.console.print(f"\n[yellow]{prompt}[/yellow]\n")
        for i, option in enumerate(options, 1):
            marker = "[bold cyan]→[/bold cyan]" if i == 1 else " "
            self.console.print(f"  {marker} [bold]{i}.[/bold] {option}")

        with forwarder.catching():
            try:
                while True:
                    response = self.console.input("\nEnter choice [1]: ").strip()
                    if not response:
                        return options[0]
                    if response.isdigit() and 1 <= int(response) <= len(options):
                        return options[int(response) - 1]
                    self.console.print(
                        f"[red]Please enter a number between 1 and {len(options)}[/red]"
                    )
            except EOFError as e:
                raise AnkhError(f"No input available for: {prompt}") from e

    def prompt_text(self, default: str, prompt: str) -> str:
        """Prompt for free text, returning ``default`` on empty input."""
        with forwarder.catching():
            try:
                return Prompt.ask(prompt, default=default, console=self.console)
            except EOFError as e:
                raise AnkhError(f"No input available for: {prompt}") from e

    def confirm_selection(self, warning: str, question: str) -> bool:
        """Show a warning panel and ask Abort/OK; True only for OK."""
        self.console.print(Panel(warning, title="Warning", border_style="yellow"))
        return self.select_one(["Abort", "OK"], question) == "OK"


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Decorator to wrap command functions with standard error handling.

    Catches Ankh errors and interrupts and formats them consistently.

    Args:
        func: The command function to wrap

    Returns:
        Wrapped function with error handling
    """
    from functools import wraps

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except AnkhError as e:
            console.handle_error(e.message, e.details)
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled by user.[/dim]")
            raise typer.Exit(130) from None

    return wrapper


# Shared console instance for consistent output
console = CLIConsole()
