"""Main entry point for TaskBridge CLI."""

import typer

from taskbridge import __version__
from taskbridge.commands import config, integration
from taskbridge.utils.ui.console import get_console

app = typer.Typer(
    name="taskbridge",
    help="Sync tasks from a third-party task provider into the local task store",
    no_args_is_help=True,
)

console = get_console()

app.add_typer(integration.app, name="provider", help="Provider connection and sync")
app.add_typer(config.app, name="config", help="Configuration management")

# Shortcuts for the everyday commands
app.command("sync")(integration.sync)
app.command("status")(integration.status)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"[bold]TaskBridge[/bold] version [cyan]{__version__}[/cyan]")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
