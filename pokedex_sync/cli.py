"""Command line entry point: ``pokedex-sync`` / ``python -m pokedex_sync``."""

from __future__ import annotations

import asyncio

import click

from pokedex_sync.logging_config import configure_logging
from pokedex_sync.schemas.catalog import CatalogEntry
from pokedex_sync.services.dependencies import build_sync_engine
from pokedex_sync.services.sync_engine import CatalogSyncEngine
from pokedex_sync.settings import AppSettings, get_settings


def format_entry(entry: CatalogEntry, *, favorite: bool) -> str:
    marker = "*" if favorite else " "
    types = f"  [{', '.join(entry.types)}]" if entry.types else ""
    return f"{marker} #{entry.id:<5} {entry.name}{types}"


def _echo_state(engine: CatalogSyncEngine) -> None:
    state = engine.state
    flags = []
    if state.offline:
        flags.append("offline")
    if state.favorites_only:
        flags.append("favorites only")
    if state.search.active:
        flags.append(f"search={state.search.query!r}")
    header = f"Status: {state.status.phase.value}"
    if state.status.message:
        header += f" ({state.status.message})"
    if flags:
        header += f" - {', '.join(flags)}"
    click.echo(header)

    display_set = engine.display_set
    if not display_set:
        click.echo("No entries to display")
        return
    favorite_ids = state.favorites.favorite_ids
    for entry in display_set:
        click.echo(format_entry(entry, favorite=entry.id in favorite_ids))


async def run_browse(
    settings: AppSettings,
    *,
    user_id: str,
    pages: int,
    query: str | None,
    favorites_only: bool,
    offline: bool,
) -> None:
    engine, close = await build_sync_engine(
        settings, user_id=user_id, initial_online=not offline
    )
    try:
        await engine.start()
        for _ in range(pages - 1):
            if not engine.state.window.has_more:
                break
            await engine.load_more()
        if query:
            await engine.search(query)
        if favorites_only and not engine.state.favorites_only:
            engine.toggle_favorites_only()
        _echo_state(engine)
    finally:
        await close()


async def run_toggle_favorite(
    settings: AppSettings, *, user_id: str, entry_id: int
) -> bool | None:
    """Toggle one favorite; returns the new membership, or ``None`` on failure."""

    engine, close = await build_sync_engine(settings, user_id=user_id)
    try:
        if not await engine.toggle_favorite(entry_id):
            return None
        return entry_id in engine.state.favorites.favorite_ids
    finally:
        await close()


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this run.")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Browse the catalog and manage favorites from the terminal."""

    settings = get_settings()
    if log_level:
        settings = settings.model_copy(update={"log_level": log_level})
    configure_logging(settings)
    ctx.obj = settings


@cli.command()
@click.option("--user", "user_id", required=True, help="Identity whose favorites to show.")
@click.option(
    "--pages",
    default=1,
    show_default=True,
    type=click.IntRange(min=1),
    help="Number of catalog pages to load.",
)
@click.option("--search", "query", default=None, help="Search by id, name or name fragment.")
@click.option("--favorites-only", is_flag=True, help="Only show favorited entries.")
@click.option("--offline", is_flag=True, help="Start offline and serve the cached favorites.")
@click.pass_obj
def browse(
    settings: AppSettings,
    user_id: str,
    pages: int,
    query: str | None,
    favorites_only: bool,
    offline: bool,
) -> None:
    """Print the current display set, one entry per line."""

    asyncio.run(
        run_browse(
            settings,
            user_id=user_id,
            pages=pages,
            query=query,
            favorites_only=favorites_only,
            offline=offline,
        )
    )


@cli.command()
@click.option("--user", "user_id", required=True, help="Identity to update.")
@click.argument("pokemon_id", type=click.IntRange(min=1))
@click.pass_obj
def favorite(settings: AppSettings, user_id: str, pokemon_id: int) -> None:
    """Add POKEMON_ID to the favorites of --user, or remove it if already there."""

    result = asyncio.run(
        run_toggle_favorite(settings, user_id=user_id, entry_id=pokemon_id)
    )
    if result is None:
        raise click.ClickException(f"Could not update favorite #{pokemon_id}")
    click.echo(f"{'Added' if result else 'Removed'} favorite #{pokemon_id}")


def main() -> None:
    cli()


__all__ = ["cli", "format_entry", "main", "run_browse", "run_toggle_favorite"]
