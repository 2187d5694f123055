"""
CLI for the FHIR query cache.

Commands:
    fhircache get REFERENCE --token T - Read a single resource
    fhircache search TYPE QUERY --token T - Search, answering from cache when possible
    fhircache cached TYPE QUERY - Show a cached search result without fetching
    fhircache config - Show current configuration
    fhircache version - Print version
"""

from __future__ import annotations

import asyncio
from typing import Annotated, Any, NoReturn

import orjson
import typer
from rich.console import Console
from rich.table import Table

from fhircache import __version__
from fhircache.cache import QueryCache, SQLiteDocumentStore
from fhircache.config import Settings, clear_settings_cache, get_settings
from fhircache.data import ResourceFetchService
from fhircache.exceptions import ResourceFetchError
from fhircache.logging import log_context, setup_logging
from fhircache.services import CachedResourceService
from fhircache.types import generate_id

app = typer.Typer(
    name="fhircache",
    help="FHIR query cache - cached reads against a remote FHIR API",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

TokenOption = Annotated[
    str,
    typer.Option("--token", "-t", envvar="FHIR_TOKEN", help="Bearer token for the FHIR API"),
]


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _require_settings() -> Settings:
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'fhircache config' to see what's missing."
        )
        raise typer.Exit(1)
    setup_logging(settings.LOG_LEVEL)
    return settings


def _print_document(document: Any) -> None:
    console.print_json(orjson.dumps(document).decode())


def _fail(error: ResourceFetchError) -> NoReturn:
    error_console.print(f"[red]Error {error.code}:[/red] {error.message}")
    raise typer.Exit(1)


@app.command()
def get(
    reference: Annotated[str, typer.Argument(help="Resource reference, e.g. Patient/123")],
    token: TokenOption,
) -> None:
    """Read a single resource from the FHIR API."""
    settings = _require_settings()

    async def run() -> dict[str, Any]:
        async with ResourceFetchService.create(settings) as fetcher:
            return await fetcher.get_resource(reference, token)

    try:
        with log_context(request_id=generate_id("req")):
            document = asyncio.run(run())
    except ResourceFetchError as e:
        _fail(e)

    _print_document(document)


@app.command()
def search(
    resource_type: Annotated[str, typer.Argument(help="FHIR resource type, e.g. Immunization")],
    query: Annotated[str, typer.Argument(help="Search query string, e.g. identifier=test")],
    token: TokenOption,
    bypass_cache: Annotated[
        bool,
        typer.Option(
            "--no-cache", help="Fetch even if the query is cached; the cached entry is kept"
        ),
    ] = False,
) -> None:
    """Search the FHIR API, answering from the query cache when possible."""
    settings = _require_settings()

    async def run() -> Any:
        store = SQLiteDocumentStore(settings.CACHE_DIR)
        await store.init()
        try:
            async with ResourceFetchService.create(settings) as fetcher:
                service = CachedResourceService(
                    QueryCache(store, namespace=settings.cache_namespace),
                    fetcher,
                )
                return await service.lookup(
                    resource_type, query, token, bypass_cache=bypass_cache
                )
        finally:
            await store.close()

    try:
        with log_context(request_id=generate_id("req")):
            result = asyncio.run(run())
    except ResourceFetchError as e:
        _fail(e)

    source = "cache" if result.cache_hit else "remote"
    error_console.print(f"[dim]Source:[/dim] {source}")
    _print_document(result.document)


@app.command()
def cached(
    resource_type: Annotated[str, typer.Argument(help="FHIR resource type")],
    query: Annotated[str, typer.Argument(help="Search query string")],
) -> None:
    """Show a cached search result without contacting the FHIR API."""
    settings = _require_settings()

    async def run() -> tuple[bool, Any]:
        async with SQLiteDocumentStore(settings.CACHE_DIR) as store:
            cache = QueryCache(store, namespace=settings.cache_namespace)
            if not await cache.exists(resource_type, query):
                return False, None
            return True, await cache.get(resource_type, query)

    found, document = asyncio.run(run())
    if not found:
        error_console.print(f"[yellow]Not cached:[/yellow] {resource_type}?{query}")
        raise typer.Exit(1)

    _print_document(document)


@app.command()
def config() -> None:
    """Show current configuration."""
    console.print()
    console.print("[bold]FHIR Query Cache Configuration[/bold]")
    console.print()

    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid or incomplete.[/red]")
        error_console.print()
        error_console.print("Required environment variables:")
        error_console.print("  - FHIR_API_HOST (http:// or https:// URL)")
        error_console.print()
        error_console.print("Create a .env file or set environment variables.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.redacted_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"fhir-query-cache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
