"""spotify-nvim CLI - Main entry point."""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import BridgeSettings, settings

app = typer.Typer(
    name="spotify-nvim",
    help="Control Spotify playback and search from Neovim",
    no_args_is_help=True,
)
console = Console()
# stdout belongs to the RPC stream while serving
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _setup_logging(config: BridgeSettings, to_file: bool = True) -> None:
    """Send logs to the configured file, or to stderr."""
    level = getattr(logging, config.log_level.upper(), logging.WARNING)
    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    if to_file and config.log_file:
        log_file = Path(config.log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(level=level, format=fmt, filename=str(log_file))
    else:
        logging.basicConfig(level=level, format=fmt)


def _token_path(token_file: str | None) -> Path:
    return Path(token_file).expanduser() if token_file else settings.token_path


# ============================================================================
# Bridge
# ============================================================================


@app.command()
def serve():
    """Serve a parent Neovim over stdio (start with jobstart(..., {'rpc': v:true}))."""
    from .auth import CredentialHolder, SessionManager
    from .bridge import CommandDispatcher
    from .bridge.nvim import NvimHost

    _setup_logging(settings)

    holder = CredentialHolder(token_file_path=settings.token_path)
    manager = SessionManager(holder, settings=settings)

    try:
        host = NvimHost.attach_stdio()
        host.run(CommandDispatcher(host, holder, manager))
    except Exception as e:
        logger.exception("Neovim transport failed")
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


# ============================================================================
# Auth Commands
# ============================================================================


@app.command()
def login(
    client_id: str = typer.Option(
        None,
        "--client-id",
        envvar="SPOTIFY_NVIM_CLIENT_ID",
        help="Spotify app client ID",
    ),
    client_secret: str = typer.Option(
        None,
        "--client-secret",
        envvar="SPOTIFY_NVIM_CLIENT_SECRET",
        help="Spotify app client secret",
    ),
    token_file: str = typer.Option(None, "--token-file", "-f", help="Token cache path"),
    force: bool = typer.Option(False, "--force", help="Discard the cached token first"),
):
    """Authorize with Spotify in the terminal and cache the session token.

    Create an app at https://developer.spotify.com/dashboard and add
    the redirect URI shown below to it.
    """
    from .auth import CredentialHolder, SessionManager, MissingCredentialsError, NotConfiguredError
    from .oauth import OAuthError, TokenStorage

    _setup_logging(settings, to_file=False)
    path = _token_path(token_file)

    if not client_id:
        console.print(
            Panel(
                "[bold]Spotify OAuth Setup[/bold]\n\n"
                "1. Go to https://developer.spotify.com/dashboard\n"
                "2. Create an app (or select an existing one)\n"
                f"3. Add this Redirect URI: {settings.redirect_uri}\n"
                "4. Copy the Client ID and Client Secret",
                title="Login",
            )
        )
        client_id = typer.prompt("Client ID")

    if not client_secret:
        client_secret = typer.prompt("Client Secret", hide_input=True)

    storage = TokenStorage()
    if force and storage.clear(path):
        console.print(f"[dim]Removed cached token {path}[/dim]")

    async def _prompt(text: str) -> str:
        return typer.prompt(text)

    async def _login():
        holder = CredentialHolder(token_file_path=path)
        await holder.configure(client_id, client_secret)
        manager = SessionManager(holder, storage=storage, settings=settings)
        try:
            return await manager.ensure_ready(_prompt)
        finally:
            await manager.aclose()

    try:
        result = asyncio.run(_login())
    except (MissingCredentialsError, NotConfiguredError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except OAuthError as e:
        console.print(f"[red]OAuth error: {e}[/red]")
        if e.details:
            console.print(f"[dim]Details: {e.details}[/dim]")
        raise typer.Exit(1)

    for notice in result.notices:
        console.print(f"[yellow]{notice}[/yellow]")

    if result.source == "cache":
        console.print(f"[green]Already logged in[/green] (token cached at {path}, use --force to redo)")
    else:
        console.print(
            Panel(
                f"[bold green]Authorization successful![/bold green]\n\n"
                f"Token file: {path}",
                title="Connected",
            )
        )


@app.command()
def status(
    token_file: str = typer.Option(None, "--token-file", "-f", help="Token cache path"),
):
    """Show the state of the cached session token."""
    from .oauth import TokenStorage

    info = TokenStorage().status(_token_path(token_file))

    table = Table(title="Spotify Session Token")
    table.add_column("Setting", style="cyan")
    table.add_column("Status", style="green")

    table.add_row("Token file", info["token_file"])
    if not info["exists"]:
        table.add_row("Cached token", "[red]Not found[/red]")
    elif info["error"]:
        table.add_row("Cached token", f"[red]Unusable: {info['error']}[/red]")
    else:
        token = info["token"]
        if token["expired"]:
            table.add_row("Access token", "[yellow]Expired[/yellow]")
        else:
            expires_in = token["expires_in_seconds"]
            table.add_row("Access token", f"Valid for {expires_in // 60}m")
        table.add_row("Scope", token["scope"] or "N/A")
        table.add_row("Refresh token", "Yes" if token["has_refresh_token"] else "No")

    console.print(table)


@app.command()
def logout(
    token_file: str = typer.Option(None, "--token-file", "-f", help="Token cache path"),
):
    """Delete the cached session token."""
    from .oauth import TokenStorage

    path = _token_path(token_file)
    if TokenStorage().clear(path):
        console.print(f"[green]Removed {path}[/green]")
    else:
        console.print(f"[yellow]No token file at {path}[/yellow]")


# ============================================================================
# Main
# ============================================================================


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"spotify-nvim v{__version__}")


if __name__ == "__main__":
    app()
