"""
Music library service that wires scanning, importing and folder watching together.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from music_library.config import Config
from music_library.events import NotificationSink
from music_library.import_queue import ImportQueue
from music_library.metadata import MetadataExtractor
from music_library.pipeline import BatchStatistics, BulkImportPipeline, SleepFunc
from music_library.registry import PathRegistry, RegistryResult
from music_library.scanner import DirectoryScanner
from music_library.settings import SettingsStore
from music_library.storage import LibraryStorage
from music_library.watcher import FileSystemWatcher


logger = logging.getLogger(__name__)


class MusicLibrary:
    """Owns the library's components for the lifetime of the application."""

    def __init__(
        self,
        config: Optional[Config] = None,
        sink: Optional[NotificationSink] = None,
        storage: Optional[LibraryStorage] = None,
        extractor: Optional[MetadataExtractor] = None,
        observer_factory: Optional[Callable[[], Any]] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize the library.

        Args:
            config: Configuration object.
            sink: Receiver of import notifications.
            storage: Song storage. Created from config if None.
            extractor: Metadata extractor. Created from config if None.
            observer_factory: Creates the watchdog observer.
            sleep: Coroutine for the pipeline and queue delays.
        """
        self.config = config or Config()
        self.sink = sink or NotificationSink()
        self.storage = storage or LibraryStorage(self.config)
        self.settings = SettingsStore(self.config)
        self.scanner = DirectoryScanner(self.config)
        self.pipeline = BulkImportPipeline(
            self.storage,
            extractor=extractor or MetadataExtractor(self.config),
            sink=self.sink,
            config=self.config,
            sleep=sleep,
        )
        self.queue = ImportQueue(self.pipeline, config=self.config, sleep=sleep)
        self.watcher = FileSystemWatcher(
            self._on_file_added, config=self.config, observer_factory=observer_factory
        )
        self.registry = PathRegistry(
            self.scanner, self.pipeline, self.watcher, self.settings, config=self.config
        )
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _on_file_added(self, path: str) -> None:
        # Called on the observer thread
        if self._loop is None or self._loop.is_closed():
            logger.warning(f"Library not started, ignoring new file: {path}")
            return
        self._loop.call_soon_threadsafe(self.queue.enqueue, path)

    async def start(self) -> List[str]:
        """Start watching and restore the persisted folders.

        Returns:
            Folders that are being watched again.
        """
        self._loop = asyncio.get_running_loop()
        self.watcher.start()
        return await self.registry.restore()

    async def close(self) -> None:
        """Stop watching and release the database."""
        logger.info("Closing music library")
        await self.queue.aclose()
        self.watcher.stop()
        self.pipeline.close()
        self.storage.close()
        self._loop = None

    async def add_watched_folder(self, path: str) -> RegistryResult:
        return await self.registry.add(path)

    def remove_watched_folder(self, path: str) -> RegistryResult:
        return self.registry.remove(path)

    def get_watched_folders(self) -> List[str]:
        return self.registry.list()

    async def scan_folder(self, path: str) -> BatchStatistics:
        """Import a folder once without watching it.

        Raises:
            DirectoryNotFound: If the folder does not exist.
        """
        result = self.scanner.scan(path)
        if result.errors:
            logger.warning(f"{len(result.errors)} folders could not be read below {path}")
        return await self.pipeline.run(result.files, is_initial_scan=True)
