"""buildcache CLI."""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from buildcache.config import (
    CacheConfig,
    get_config_template,
    load_config,
    load_config_from_env,
)
from buildcache.errors import BuildCacheError, ConfigurationError

app = typer.Typer(help="buildcache - remote build cache server")
console = Console()

CONFIG_FILE = "buildcache.yaml"


def setup_logging(verbose: bool = False, level: str = "info"):
    """Configure logging with rich handler."""
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("azure").setLevel(logging.WARNING)


def get_config(config_path: Path | None) -> CacheConfig:
    """Load config from a file, or from the environment when no file is given."""
    try:
        if config_path is not None:
            return load_config(config_path)
        return load_config_from_env()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def init():
    """Write a configuration template to the current directory."""
    config_file = Path(CONFIG_FILE)

    if config_file.exists():
        console.print(f"[yellow]Warning:[/yellow] {CONFIG_FILE} already exists.")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit(0)

    config_file.write_text(get_config_template())
    console.print(f"[green]Wrote {CONFIG_FILE}.[/green]")
    console.print(f"\nEdit {CONFIG_FILE}, then run 'buildcache serve --config {CONFIG_FILE}'.")


@app.command()
def check(
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Validate configuration and initialize the storage backend."""
    config = get_config(config_path)
    setup_logging(verbose, config.server.log_level)

    from buildcache.storage.factory import create_storage_provider

    try:
        provider = asyncio.run(create_storage_provider(config.storage))
    except BuildCacheError as e:
        console.print(f"[red]Storage backend failed to start:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="buildcache")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Provider", config.storage.provider.value)
    table.add_row("Path", config.storage.path)
    table.add_row("Backend", type(provider).__name__)
    table.add_row("Listen", f"{config.server.host}:{config.server.port}")
    table.add_row("API", f"/{config.server.api_version}")
    table.add_row("Tokens", str(len(config.server.tokens)))
    console.print(table)
    console.print("[green]Storage backend is ready.[/green]")


@app.command()
def serve(
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    host: str | None = typer.Option(None, "--host", help="Override listen host"),
    port: int | None = typer.Option(None, "--port", "-p", help="Override listen port"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Run the cache server."""
    config = get_config(config_path)
    setup_logging(verbose, config.server.log_level)

    import uvicorn

    from buildcache.api.app import create_app

    server = config.server
    console.print("[green]Starting buildcache[/green]")
    console.print(f"  Storage: {config.storage.provider.value} ({config.storage.path})")
    console.print(f"  Listen: {host or server.host}:{port or server.port}")

    uvicorn.run(
        create_app(config),
        host=host or server.host,
        port=port or server.port,
        log_config=None,
    )


if __name__ == "__main__":
    app()
