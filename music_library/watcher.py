"""
File Watcher Module

Implements new-file detection for watched folders using watchdog.
"""

import logging
import os
from typing import Callable, Dict, Iterable, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from music_library.config import Config
from music_library.exceptions import WatcherError
from music_library.scanner import media_type, normalize_path


logger = logging.getLogger(__name__)


class AudioFileEventHandler(FileSystemEventHandler):
    """
    Watchdog event handler for audio files.

    New files and files moved into a watched folder are passed to
    ``on_added``. Deletions are only logged: songs are never removed from
    the library because a file vanished, since editors and copy tools
    briefly remove files while writing them.
    """

    def __init__(
        self,
        on_added: Callable[[str], None],
        extensions: Iterable[str],
        ignore_hidden: bool = True
    ):
        super().__init__()
        self.on_added = on_added
        self.extensions = {ext.lower().lstrip(".") for ext in extensions}
        self.ignore_hidden = ignore_hidden

    def accepts(self, path: str) -> bool:
        """Check if the path is a visible audio file."""
        if self.ignore_hidden and os.path.basename(path).startswith("."):
            return False
        return media_type(path) in self.extensions

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle_added(os.fsdecode(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle_added(os.fsdecode(event.dest_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(event.src_path)
        if self.accepts(path):
            logger.info(f"File removed: {path}")

    def _handle_added(self, path: str) -> None:
        if not self.accepts(path):
            return
        logger.debug(f"File created: {path}")
        try:
            self.on_added(path)
        except Exception:
            logger.exception(f"Failed to queue new file: {path}")


class FileSystemWatcher:
    """
    Watches folders for new audio files.

    ``on_added`` is called from the observer thread.
    """

    def __init__(
        self,
        on_added: Callable[[str], None],
        config: Optional[Config] = None,
        observer_factory: Optional[Callable[[], Observer]] = None
    ):
        """
        Initialize the file watcher.

        Args:
            on_added: Called with the path of each new audio file.
            config: Configuration object.
            observer_factory: Creates the watchdog observer.
        """
        self.config = config or Config()
        self.handler = AudioFileEventHandler(
            on_added,
            extensions=self.config.supported_formats,
            ignore_hidden=self.config.get("watcher.ignore_hidden", True),
        )
        self._observer_factory = observer_factory or Observer
        self._observer: Optional[Observer] = None
        self._watches: Dict[str, object] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def watched_paths(self) -> List[str]:
        return list(self._watches)

    def _get_observer(self) -> Observer:
        if self._observer is None:
            self._observer = self._observer_factory()
        return self._observer

    def start(self) -> None:
        """Start the observer thread."""
        if self._running:
            return
        self._get_observer().start()
        self._running = True
        logger.info("File watcher started")

    def stop(self) -> None:
        """Stop watching all folders."""
        if self._observer is not None and self._running:
            self._observer.stop()
            self._observer.join(timeout=5)
            logger.info("File watcher stopped")
        self._observer = None
        self._watches.clear()
        self._running = False

    def watch(self, path: str) -> None:
        """
        Watch a folder and all of its subfolders.

        Args:
            path: Directory path to watch

        Raises:
            WatcherError: If the folder cannot be watched.
        """
        path = normalize_path(path)

        if path in self._watches:
            logger.debug(f"Path already being watched: {path}")
            return

        if not os.path.isdir(path):
            raise WatcherError(path, "not a directory")

        try:
            watch = self._get_observer().schedule(self.handler, path, recursive=True)
        except Exception as e:
            logger.error(f"Failed to watch path {path}: {e}")
            raise WatcherError(path, str(e)) from e

        self._watches[path] = watch
        logger.info(f"Watching path: {path}")

    def unwatch(self, path: str) -> bool:
        """
        Stop watching a folder.

        Returns:
            bool: True if the folder was being watched
        """
        path = normalize_path(path)
        watch = self._watches.pop(path, None)
        if watch is None:
            return False

        if self._observer is not None:
            try:
                self._observer.unschedule(watch)
            except Exception as e:
                logger.warning(f"Error detaching watch for {path}: {e}")

        logger.info(f"Stopped watching path: {path}")
        return True
