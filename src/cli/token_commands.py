"""Remember-me store maintenance commands."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from src.app.core.errors import RememberMeError
from src.app.core.models.identity import Provider
from src.app.core.security import token_fingerprint
from src.app.core.services import DbSessionService, TokenLedger
from src.app.runtime.context import get_config

console = Console()

T = TypeVar("T")

db_app = typer.Typer(help="🗄️  Remember-me store schema commands")
tokens_app = typer.Typer(help="🔑 Inspect and revoke remember-me tokens")


def run_with_ledger(operation: Callable[[TokenLedger], Awaitable[T]]) -> T:
    """Open the store, run ``operation`` against a ready ledger, close the pool."""
    config = get_config()
    database_service = DbSessionService(config.database, config.app.environment)
    ledger = TokenLedger(database_service, config.remember)

    async def _run() -> T:
        if not await ledger.initialize():
            console.print(
                f"[red]❌ Remember-me store unreachable ({database_service.backend})[/red]"
            )
            raise typer.Exit(code=1)
        return await operation(ledger)

    try:
        return asyncio.run(_run())
    except RememberMeError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        database_service.dispose()


@db_app.command("init")
def init_db() -> None:
    """Create the remember_tokens table and indexes if missing."""

    async def _noop(ledger: TokenLedger) -> None:
        return None

    run_with_ledger(_noop)
    console.print("[green]✅ Remember-me schema ready[/green]")


@tokens_app.command("sweep")
def sweep() -> None:
    """Delete every expired remember token."""
    removed = run_with_ledger(lambda ledger: ledger.purge_expired())
    console.print(f"[green]Removed {removed} expired tokens[/green]")


@tokens_app.command("revoke")
def revoke(
    token: str = typer.Argument(..., help="Remember token value"),
) -> None:
    """Revoke a single remember token."""
    deleted = run_with_ledger(lambda ledger: ledger.delete_token(token))
    if deleted:
        console.print(f"[green]Revoked token {token_fingerprint(token)}[/green]")
    else:
        console.print(f"[yellow]No token {token_fingerprint(token)} found[/yellow]")


@tokens_app.command("revoke-identity")
def revoke_identity(
    external_id: str = typer.Argument(..., help="Provider-side user id"),
    provider: Provider = typer.Option(..., "--provider", "-p", help="Identity provider"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Revoke every remember token of one principal."""
    if not yes and not Confirm.ask(
        f"Revoke all remember tokens of {provider}:{external_id}?"
    ):
        raise typer.Exit()

    removed = run_with_ledger(
        lambda ledger: ledger.revoke_identity(external_id, provider)
    )
    console.print(
        f"[green]Revoked {removed} tokens for {provider}:{external_id}[/green]"
    )


@tokens_app.command("list")
def list_tokens(
    external_id: str = typer.Argument(..., help="Provider-side user id"),
    provider: Provider = typer.Option(..., "--provider", "-p", help="Identity provider"),
) -> None:
    """Show the remember tokens held by one principal."""
    tokens = run_with_ledger(lambda ledger: ledger.list_tokens(external_id, provider))

    if not tokens:
        console.print(f"[yellow]No tokens for {provider}:{external_id}[/yellow]")
        return

    table = Table(title=f"Remember tokens of {provider}:{external_id}")
    table.add_column("Token", style="cyan", no_wrap=True)
    table.add_column("Display name", style="green")
    table.add_column("Email", style="blue")
    table.add_column("Created", style="magenta")
    table.add_column("Last used", style="magenta")
    table.add_column("Expires", style="yellow")

    for remember_token in tokens:
        table.add_row(
            token_fingerprint(remember_token.token),
            remember_token.display_name,
            remember_token.email,
            remember_token.created_at.isoformat(timespec="seconds"),
            remember_token.last_used_at.isoformat(timespec="seconds"),
            remember_token.expires_at.isoformat(timespec="seconds"),
        )

    console.print(table)
    console.print(f"\n[green]Found {len(tokens)} tokens[/green]")
