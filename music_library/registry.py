"""
Registry of watched folders.
"""

import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Set

from music_library.config import Config
from music_library.exceptions import (
    AlreadyWatched,
    DirectoryNotFound,
    LibraryError,
    SettingsError,
    WatcherError,
)
from music_library.pipeline import BatchStatistics, BulkImportPipeline
from music_library.scanner import DirectoryScanner, normalize_path
from music_library.settings import SettingsStore
from music_library.watcher import FileSystemWatcher


logger = logging.getLogger(__name__)


@dataclass
class RegistryResult:
    """Outcome of adding or removing a watched folder."""
    success: bool
    path: str
    error: Optional[LibraryError] = None
    statistics: Optional[BatchStatistics] = None
    changed: bool = False

    @property
    def message(self) -> Optional[str]:
        return str(self.error) if self.error else None


class PathRegistry:
    """Set of watched folders, persisted on every change.

    Folders that are missing at startup are kept in ``missing``. Unless
    ``watcher.prune_missing`` is set they stay in the settings file, so a
    temporarily unmounted drive is watched again on a later start.
    """

    def __init__(
        self,
        scanner: DirectoryScanner,
        pipeline: BulkImportPipeline,
        watcher: FileSystemWatcher,
        settings: SettingsStore,
        config: Optional[Config] = None,
    ):
        self.config = config or Config()
        self.scanner = scanner
        self.pipeline = pipeline
        self.watcher = watcher
        self.settings = settings
        self.prune_missing = bool(self.config.get("watcher.prune_missing", False))
        self.rescan_on_startup = bool(self.config.get("watcher.rescan_on_startup", True))

        self._paths: Set[str] = set()
        self.missing: Set[str] = set()
        self._adding: Set[str] = set()

    def __contains__(self, path: str) -> bool:
        return normalize_path(path) in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def list(self) -> List[str]:
        """Get the currently watched folders."""
        return list(self._paths)

    def _persist(self, paths: Set[str]) -> None:
        try:
            self.settings.save_watched_paths(list(paths))
        except OSError as e:
            raise SettingsError(self.settings.path, str(e)) from e

    async def add(self, path: str) -> RegistryResult:
        """Import a folder's audio files and start watching it.

        The initial import completes before the watch is attached.

        Args:
            path: Folder to watch.

        Returns:
            RegistryResult with the initial import statistics on success.
        """
        path = normalize_path(path)

        if path in self._paths or path in self._adding:
            return RegistryResult(success=False, path=path, error=AlreadyWatched(path))

        if not os.path.isdir(path):
            return RegistryResult(success=False, path=path, error=DirectoryNotFound(path))
        if not os.access(path, os.R_OK | os.X_OK):
            return RegistryResult(
                success=False,
                path=path,
                error=DirectoryNotFound(path, "Directory is not readable"),
            )

        self._adding.add(path)
        try:
            statistics = await self._attach(path, scan=True)
            self._persist(self._paths | (self.missing - {path}))
        except (DirectoryNotFound, WatcherError) as e:
            logger.error(f"Error adding watched folder: {e}")
            return RegistryResult(success=False, path=path, error=e)
        except SettingsError as e:
            logger.error(f"Error adding watched folder: {e}")
            self._paths.discard(path)
            self.watcher.unwatch(path)
            return RegistryResult(success=False, path=path, error=e)
        finally:
            self._adding.discard(path)

        self.missing.discard(path)

        logger.info(f"Started watching folder: {path}")
        return RegistryResult(success=True, path=path, statistics=statistics, changed=True)

    async def _attach(self, path: str, scan: bool) -> Optional[BatchStatistics]:
        statistics = None
        if scan:
            scan_result = self.scanner.scan(path)
            statistics = await self.pipeline.run(scan_result.files, is_initial_scan=True)

        self.watcher.watch(path)
        self._paths.add(path)
        return statistics

    def remove(self, path: str) -> RegistryResult:
        """Stop watching a folder.

        Songs already imported from it stay in the library. Removing a
        folder that is not watched succeeds without changing anything.
        The folder stays watched if the settings cannot be saved.
        """
        path = normalize_path(path)

        if path not in self._paths and path not in self.missing:
            logger.debug(f"Folder was not being watched: {path}")
            return RegistryResult(success=True, path=path, changed=False)

        try:
            self._persist((self._paths | self.missing) - {path})
        except SettingsError as e:
            logger.error(f"Error removing watched folder: {e}")
            return RegistryResult(success=False, path=path, error=e)

        self.watcher.unwatch(path)
        self._paths.discard(path)
        self.missing.discard(path)

        logger.info(f"Stopped watching folder: {path}")
        return RegistryResult(success=True, path=path, changed=True)

    async def restore(self, watch: bool = True) -> List[str]:
        """Re-watch the folders persisted by a previous run.

        Args:
            watch: If False, only load the persisted set so it can be
                listed or edited without scanning or watching.

        Returns:
            Folders that were restored.
        """
        restored = []
        persisted = self.settings.load_watched_paths()

        for stored_path in persisted:
            path = normalize_path(stored_path)
            if path in self._paths or path in self._adding:
                continue

            if not os.path.isdir(path):
                logger.warning(f"Watched folder no longer exists: {path}")
                self.missing.add(path)
                continue

            if not watch:
                self._paths.add(path)
                restored.append(path)
                continue

            try:
                await self._attach(path, scan=self.rescan_on_startup)
            except (DirectoryNotFound, WatcherError) as e:
                logger.error(f"Could not restore watched folder: {e}")
                self.missing.add(path)
                continue

            restored.append(path)

        if self.prune_missing and self.missing:
            try:
                self._persist(self._paths)
            except SettingsError as e:
                logger.error(f"Could not prune missing folders: {e}")
            else:
                logger.info(f"Pruned {len(self.missing)} missing folders from settings")
                self.missing.clear()

        logger.info(f"Restored {len(restored)} of {len(persisted)} watched folders")
        return restored
