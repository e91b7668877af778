"""Provider integration commands: connect, status, sync, and friends."""

from typing import Optional

import httpx
import typer

from taskbridge.config import get_config_manager
from taskbridge.models import ListFilter
from taskbridge.services.integration_service import (
    IntegrationService,
    build_integration_service,
    build_scheduler,
)
from taskbridge.utils.ui.console import get_console
from taskbridge.utils.ui.formatters import (
    format_dict_table,
    format_info,
    format_output,
    format_success,
    format_warning,
    format_sync_result,
)

from .decorators import command_wrapper

app = typer.Typer(help="Connect to the task provider and sync tasks")
console = get_console()


def _service(profile: str) -> IntegrationService:
    return build_integration_service(get_config_manager(profile))


def _user(profile: str, user: Optional[str]) -> str:
    return user or get_config_manager(profile).config.user_id


@app.command("connect")
@command_wrapper
async def connect(
    profile: str = typer.Option("default", "--profile", help="Profile name"),
    user: Optional[str] = typer.Option(None, "--user", help="Local user id"),
    redirect_uri: Optional[str] = typer.Option(
        None, "--redirect-uri", help="Registered redirect URI"
    ),
    open_browser: bool = typer.Option(
        False, "--open", help="Open the authorization page in a browser"
    ),
) -> None:
    """Authorize access to the provider account.

    Visit the printed URL, sign in, then paste the full URL your browser
    was redirected to.
    """
    service = _service(profile)
    user_id = _user(profile, user)
    request = await service.connect(user_id, redirect_uri)

    console.print("Open this URL to authorize TaskBridge:")
    console.print(f"[cyan]{request['authorization_url']}[/cyan]")
    if open_browser:
        typer.launch(request["authorization_url"])

    redirected = typer.prompt("Redirected URL")
    params = dict(httpx.URL(redirected.strip()).params)
    result = await service.handle_callback(params, redirect_uri, user_id=user_id)
    format_success(f"Connected to {result['provider']}")


@app.command("status")
@command_wrapper
async def status(
    profile: str = typer.Option("default", "--profile", help="Profile name"),
    user: Optional[str] = typer.Option(None, "--user", help="Local user id"),
    output: str = typer.Option("table", "--output", "-o", help="Output format"),
) -> None:
    """Show connection state and sync statistics."""
    service = _service(profile)
    format_output(await service.status(_user(profile, user)), output)


@app.command("disconnect")
@command_wrapper
async def disconnect(
    profile: str = typer.Option("default", "--profile", help="Profile name"),
    user: Optional[str] = typer.Option(None, "--user", help="Local user id"),
    unlink: bool = typer.Option(
        False, "--unlink", help="Also clear provider links from local tasks"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Revoke and delete the stored provider credential."""
    if not yes:
        typer.confirm("Disconnect the provider account?", abort=True)
    service = _service(profile)
    result = await service.disconnect(_user(profile, user), unlink_tasks=unlink)
    format_success(f"Disconnected from {result['provider']}")
    if unlink:
        format_info(f"Unlinked {result['unlinked_tasks']} local task(s)")


@app.command("sync")
@command_wrapper
async def sync(
    profile: str = typer.Option("default", "--profile", help="Profile name"),
    user: Optional[str] = typer.Option(None, "--user", help="Local user id"),
    list_id: Optional[str] = typer.Option(None, "--list-id", help="Remote list id"),
    list_name: Optional[str] = typer.Option(
        None, "--list-name", help="Remote list display name"
    ),
    include_completed: Optional[bool] = typer.Option(
        None,
        "--include-completed/--exclude-completed",
        help="Pull completed tasks too (default from config)",
    ),
    deadline: Optional[float] = typer.Option(
        None, "--deadline", help="Stop after this many seconds"
    ),
    output: str = typer.Option("table", "--output", "-o", help="Output format"),
) -> None:
    """Pull tasks from the provider into the local store."""
    config = get_config_manager(profile).config
    list_filter = ListFilter(
        list_id=list_id,
        list_name=list_name,
        include_completed=(
            config.sync.include_completed if include_completed is None else include_completed
        ),
    )
    service = _service(profile)
    summary = await service.sync(
        _user(profile, user),
        list_filter,
        deadline=deadline if deadline is not None else config.sync.deadline,
    )
    if output == "table":
        format_sync_result(summary)
    else:
        format_output(summary, output)


@app.command("lists")
@command_wrapper
async def lists(
    profile: str = typer.Option("default", "--profile", help="Profile name"),
    user: Optional[str] = typer.Option(None, "--user", help="Local user id"),
    output: str = typer.Option("table", "--output", "-o", help="Output format"),
) -> None:
    """Show the task lists available on the provider."""
    service = _service(profile)
    result = await service.lists(_user(profile, user))
    if output == "table":
        format_dict_table(result["lists"])
    else:
        format_output(result, output)


@app.command("watch")
@command_wrapper
async def watch(
    profile: str = typer.Option("default", "--profile", help="Profile name"),
    interval: Optional[int] = typer.Option(
        None, "--interval", help="Seconds between runs (default from config)"
    ),
    once: bool = typer.Option(False, "--once", help="Run a single pass and exit"),
) -> None:
    """Periodically sync every connected user."""
    config_manager = get_config_manager(profile)
    scheduler = build_scheduler(_service(profile), config_manager)
    if interval is not None:
        scheduler.interval = interval

    if once:
        results = await scheduler.run_once()
        if not results:
            format_warning("No connected users to sync")
            return
        format_dict_table(
            [
                {"user": user_id, **result.summary()["results"], "truncated": result.truncated}
                for user_id, result in results.items()
            ]
        )
        return

    format_info(f"Syncing every {scheduler.interval}s, press Ctrl+C to stop")
    await scheduler.run_forever()
