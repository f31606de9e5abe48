"""Main CLI application module."""

import typer
from rich.console import Console
from rich.panel import Panel

from .token_commands import db_app, tokens_app

console = Console()

# Create the main CLI application
app = typer.Typer(
    help="🛠️  Login gateway CLI - serve and maintain the remember-me store",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register command groups
app.add_typer(db_app, name="db")
app.add_typer(tokens_app, name="tokens")


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Host to bind; defaults to app.host"),
    port: int | None = typer.Option(None, help="Port to bind; defaults to app.port"),
    reload: bool = typer.Option(False, help="Enable auto-reload on code changes"),
    log_level: str = typer.Option(
        "info", help="Log level (debug, info, warning, error, critical)"
    ),
) -> None:
    """🚀 Start the login gateway."""
    import uvicorn

    from src.app.runtime.context import get_config

    app_config = get_config().app
    host = host or app_config.host
    port = port or app_config.port

    console.print(
        Panel.fit(
            f"[bold green]Starting {app_config.name}[/bold green]",
            border_style="green",
        )
    )
    console.print(f"[blue]Server will be available at:[/blue] http://{host}:{port}")

    uvicorn.run(
        "src.app.api.http.app:app",
        host=host,
        port=port,
        reload=reload,
        reload_dirs=["src"] if reload else None,
        log_level=log_level,
    )


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
