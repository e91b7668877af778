"""Configuration management commands."""

from typing import Optional

import typer

from taskbridge.config import get_config_manager
from taskbridge.utils.ui.console import get_console
from taskbridge.utils.ui.formatters import format_error, format_output, format_success

app = typer.Typer(help="Configuration management commands")
console = get_console()

_SECRET_KEYS = {"client_secret"}


def _mask(data: dict) -> dict:
    masked = {}
    for key, value in data.items():
        if isinstance(value, dict):
            masked[key] = _mask(value)
        elif key in _SECRET_KEYS and value:
            masked[key] = "********"
        else:
            masked[key] = value
    return masked


@app.command("view")
def view_config(
    profile: str = typer.Option("default", "--profile", help="Profile name"),
    output: str = typer.Option("yaml", "--output", "-o", help="Output format"),
) -> None:
    """View current configuration (secrets masked)."""
    try:
        config_manager = get_config_manager(profile)
        format_output(_mask(config_manager.config.model_dump()), output)
    except Exception as e:
        format_error(f"Failed to view config: {str(e)}")
        raise typer.Exit(1)


@app.command("get")
def get_config(
    key: str = typer.Argument(..., help="Configuration key (e.g., sync.interval)"),
    profile: str = typer.Option("default", "--profile", help="Profile name"),
) -> None:
    """Get a configuration value."""
    config_manager = get_config_manager(profile)
    value = config_manager.get(key)
    if value is None:
        format_error(f"Configuration key '{key}' not found")
        raise typer.Exit(1)
    console.print(value)


@app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key (e.g., sync.interval)"),
    value: str = typer.Argument(..., help="Configuration value"),
    profile: str = typer.Option("default", "--profile", help="Profile name"),
) -> None:
    """Set a configuration value."""
    try:
        config_manager = get_config_manager(profile)

        # Try to convert value to appropriate type
        parsed_value: str | int | bool = value
        if value.lower() in ("true", "false"):
            parsed_value = value.lower() == "true"
        elif value.isdigit():
            parsed_value = int(value)

        config_manager.set(key, parsed_value)
        shown = "********" if key.split(".")[-1] in _SECRET_KEYS else parsed_value
        format_success(f"Configuration '{key}' set to '{shown}'")
    except Exception as e:
        format_error(f"Failed to set config: {str(e)}")
        raise typer.Exit(1)


@app.command("reset")
def reset_config(
    key: Optional[str] = typer.Argument(None, help="Configuration key to reset"),
    profile: str = typer.Option("default", "--profile", help="Profile name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Reset configuration to defaults."""
    if not yes:
        msg = "entire configuration" if not key else f"'{key}'"
        if not typer.confirm(f"Are you sure you want to reset {msg}?"):
            format_error("Cancelled")
            raise typer.Exit(0)

    try:
        get_config_manager(profile).reset(key)
    except Exception as e:
        format_error(f"Failed to reset config: {str(e)}")
        raise typer.Exit(1)

    if key:
        format_success(f"Configuration '{key}' reset to default")
    else:
        format_success("Configuration reset to defaults")
