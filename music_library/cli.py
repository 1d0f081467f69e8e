"""
CLI module for music library commands.
"""

import asyncio
import logging
import os
import sys
from typing import Optional, Tuple

import click
from tqdm import tqdm

from music_library.config import Config, set_config
from music_library.events import (
    BatchComplete,
    BatchProgress,
    BatchStarted,
    ImportEvent,
    NotificationSink,
    SingleFileAdded,
)
from music_library.exceptions import DirectoryNotFound
from music_library.library import MusicLibrary
from music_library.metadata import get_duration_formatted


def setup_logging(level: str = "INFO", config: Optional[Config] = None) -> None:
    """Setup logging configuration.

    Args:
        level: Logging level.
        config: Configuration with optional log format and file.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    handlers = [logging.StreamHandler()]

    if config is not None:
        log_format = config.get("logging.format", log_format)
        log_file = config.get("logging.file")
        if log_file:
            os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
            handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=handlers,
    )


class ProgressBarSink(NotificationSink):
    """Renders import batches as tqdm progress bars."""

    def __init__(self):
        self._bar: Optional[tqdm] = None

    def notify(self, event: ImportEvent) -> None:
        if isinstance(event, BatchStarted):
            self._close_bar()
            desc = "Scanning" if event.is_initial_scan else "Importing"
            self._bar = tqdm(total=event.total, desc=desc, unit="file")
        elif isinstance(event, BatchProgress) and self._bar is not None:
            self._bar.update(event.processed - self._bar.n)
            self._bar.set_postfix(
                added=event.added, duplicates=event.duplicates, errors=event.errors
            )
        elif isinstance(event, BatchComplete):
            self._close_bar()
            click.echo(
                f"Added {event.added}, duplicates {event.duplicates}, "
                f"errors {event.errors} ({event.total} files)"
            )
        elif isinstance(event, SingleFileAdded):
            click.echo(f"New song added: {event.display_name}")

    def _close_bar(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


def _open_library(ctx) -> MusicLibrary:
    return MusicLibrary(ctx.obj["config"], sink=ProgressBarSink())


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to configuration file"
)
@click.option(
    "--log-level",
    "-l",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level"
)
@click.pass_context
def cli(ctx, config: str, log_level: str):
    """Music Library - local audio library with watched folders."""
    cfg = Config(config) if config else Config()
    set_config(cfg)

    setup_logging(log_level, cfg)

    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command()
@click.argument("folder", type=click.Path())
@click.pass_context
def add(ctx, folder: str):
    """Import a folder and add it to the watched folders."""
    async def run():
        library = _open_library(ctx)
        try:
            await library.registry.restore(watch=False)
            return await library.add_watched_folder(folder)
        finally:
            await library.close()

    result = asyncio.run(run())

    if not result.success:
        click.echo(f"Error: {result.message}", err=True)
        sys.exit(1)

    click.echo(f"Watching: {result.path}")


@cli.command()
@click.argument("folder", type=click.Path())
@click.pass_context
def remove(ctx, folder: str):
    """Stop watching a folder. Imported songs are kept."""
    async def run():
        library = _open_library(ctx)
        try:
            await library.registry.restore(watch=False)
            return library.remove_watched_folder(folder)
        finally:
            await library.close()

    result = asyncio.run(run())

    if not result.success:
        click.echo(f"Error: {result.message}", err=True)
        sys.exit(1)

    if result.changed:
        click.echo(f"Stopped watching: {result.path}")
    else:
        click.echo(f"Folder was not being watched: {result.path}")


@cli.command(name="list")
@click.pass_context
def list_folders(ctx):
    """List watched folders."""
    async def run():
        library = _open_library(ctx)
        try:
            await library.registry.restore(watch=False)
            return library.get_watched_folders(), sorted(library.registry.missing)
        finally:
            await library.close()

    folders, missing = asyncio.run(run())

    if not folders and not missing:
        click.echo("No watched folders")
        return

    for folder in sorted(folders):
        click.echo(folder)
    for folder in missing:
        click.echo(f"{folder} (missing)")


@cli.command(name="import")
@click.argument("folder", type=click.Path())
@click.pass_context
def import_folder(ctx, folder: str):
    """Import a folder once without watching it."""
    async def run():
        library = _open_library(ctx)
        try:
            return await library.scan_folder(folder)
        finally:
            await library.close()

    try:
        asyncio.run(run())
    except DirectoryNotFound as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option(
    "--folder",
    "-f",
    "folders",
    multiple=True,
    type=click.Path(),
    help="Folder to add before watching (repeatable)"
)
@click.pass_context
def watch(ctx, folders: Tuple[str, ...]):
    """Watch all registered folders until interrupted."""
    async def run():
        library = _open_library(ctx)
        try:
            restored = await library.start()
            for folder in folders:
                result = await library.add_watched_folder(folder)
                if not result.success:
                    click.echo(f"Error: {result.message}", err=True)

            watched = library.get_watched_folders()
            if not watched:
                click.echo("No folders to watch. Use 'add' or --folder.", err=True)
                return

            click.echo(f"Watching {len(watched)} folders ({len(restored)} restored). Press Ctrl+C to stop.")
            while True:
                await asyncio.sleep(3600)
        finally:
            await library.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nStopped")


@cli.command()
@click.option(
    "--playlist",
    "-p",
    help="Only list songs of this playlist"
)
@click.pass_context
def songs(ctx, playlist: str):
    """List songs in the library."""
    config = ctx.obj["config"]

    from music_library.storage import LibraryStorage

    storage = LibraryStorage(config)
    try:
        if playlist:
            playlist_id = storage.get_playlist_id(playlist)
            if playlist_id is None:
                click.echo(f"No such playlist: {playlist}", err=True)
                sys.exit(1)
            rows = storage.get_playlist_songs(playlist_id)
        else:
            rows = storage.get_all_songs()
    finally:
        storage.close()

    for song in rows:
        duration = get_duration_formatted(song["duration"])
        click.echo(f"{song['artist']} - {song['title']} [{song['album']}] {duration}")


@cli.command()
@click.pass_context
def stats(ctx):
    """Show library statistics."""
    config = ctx.obj["config"]

    from music_library.storage import LibraryStorage
    from music_library.settings import SettingsStore

    storage = LibraryStorage(config)
    try:
        song_count = storage.get_song_count()
        playlists = storage.get_playlists()
    finally:
        storage.close()

    watched = SettingsStore(config).load_watched_paths()

    click.echo(f"\nLibrary Statistics")
    click.echo(f"==================\n")
    click.echo(f"Songs: {song_count}")
    click.echo(f"Watched folders: {len(watched)}")
    click.echo(f"\nPlaylists:")
    for playlist in playlists:
        click.echo(f"  {playlist['name']}: {playlist['song_count']}")
    click.echo()


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
