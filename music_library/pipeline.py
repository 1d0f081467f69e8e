"""
Bulk import pipeline: metadata extraction and persistence for batches of files.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Iterable, List, Optional

from music_library.config import Config
from music_library.events import BatchComplete, BatchProgress, BatchStarted, NotificationSink, emit
from music_library.exceptions import DuplicateError, ExtractionError
from music_library.metadata import MetadataExtractor
from music_library.scanner import normalize_path
from music_library.storage import LibraryStorage


logger = logging.getLogger(__name__)


SleepFunc = Callable[[float], Awaitable[None]]


class ImportResult(Enum):
    """Outcome of importing one file."""
    ADDED = "added"
    DUPLICATE = "duplicate"
    ERROR = "error"


@dataclass
class BatchStatistics:
    """Counters for one import batch."""
    total: int = 0
    added: int = 0
    duplicates: int = 0
    errors: int = 0

    @property
    def processed(self) -> int:
        return self.added + self.duplicates + self.errors

    def record(self, result: ImportResult) -> None:
        if result is ImportResult.ADDED:
            self.added += 1
        elif result is ImportResult.DUPLICATE:
            self.duplicates += 1
        else:
            self.errors += 1

    def copy(self) -> "BatchStatistics":
        return replace(self)


def chunked(items: List[str], size: int) -> List[List[str]]:
    """Split items into consecutive lists of at most size elements."""
    return [items[i:i + size] for i in range(0, len(items), size)]


class BulkImportPipeline:
    """Imports batches of audio files into the library.

    Files are processed one at a time on a single worker thread. Per-file
    failures never abort a batch; they only show up in the statistics.
    """

    def __init__(
        self,
        storage: LibraryStorage,
        extractor: Optional[MetadataExtractor] = None,
        sink: Optional[NotificationSink] = None,
        config: Optional[Config] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize pipeline.

        Args:
            storage: Song storage.
            extractor: Metadata extractor.
            sink: Receiver of batch events.
            config: Configuration object.
            sleep: Coroutine used for the yield between sub-batches.
        """
        self.config = config or Config()
        self.storage = storage
        self.extractor = extractor or MetadataExtractor(self.config)
        self.sink = sink or NotificationSink()
        self.batch_size = max(1, self.config.batch_size)
        self.yield_seconds = self.config.yield_seconds
        self._sleep = sleep or asyncio.sleep
        self._stats = BatchStatistics()
        self._shutting_down = False
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _get_lock(self) -> asyncio.Lock:
        # Locks are bound to the loop they first wait on
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    @property
    def statistics(self) -> BatchStatistics:
        """Statistics of the current or last batch."""
        return self._stats.copy()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    def import_file(self, file_path: str) -> ImportResult:
        """Extract metadata for one file and insert it if absent.

        Args:
            file_path: Path of the audio file.

        Returns:
            ImportResult for the file. Never raises.
        """
        path = normalize_path(file_path)

        try:
            if self.storage.song_exists_by_path(path):
                return ImportResult.DUPLICATE

            metadata = self.extractor.extract(path)
            self.storage.insert_song(metadata)
            return ImportResult.ADDED

        except DuplicateError:
            return ImportResult.DUPLICATE
        except ExtractionError as e:
            logger.warning(str(e))
            return ImportResult.ERROR
        except Exception as e:
            logger.error(f"Error processing {path}: {e}")
            return ImportResult.ERROR

    async def _run_in_executor(self, file_path: str) -> ImportResult:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="import")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.import_file, file_path)

    async def import_path(self, file_path: str) -> ImportResult:
        """Import one file on the worker thread, after any running batch."""
        async with self._get_lock():
            return await self._run_in_executor(file_path)

    async def run(
        self,
        paths: Iterable[str],
        is_initial_scan: bool = False
    ) -> BatchStatistics:
        """Import a batch of files.

        Batches run one at a time. A batch requested while another is
        running waits for it to complete.

        Args:
            paths: Audio file paths, processed in order.
            is_initial_scan: Whether the batch comes from scanning a newly
                watched folder.

        Returns:
            Final statistics for the batch.
        """
        paths = list(paths)
        if not paths:
            return BatchStatistics()

        async with self._get_lock():
            if self._shutting_down:
                logger.info(f"Pipeline is shut down, skipping {len(paths)} files")
                return BatchStatistics(total=len(paths))

            total = len(paths)
            stats = BatchStatistics(total=total)
            self._stats = stats
            emit(self.sink, BatchStarted(total=total, is_initial_scan=is_initial_scan))

            for sub_batch in chunked(paths, self.batch_size):
                if not self._shutting_down:
                    for path in sub_batch:
                        stats.record(await self._run_in_executor(path))

                if self._shutting_down:
                    logger.info(
                        f"Import stopped by shutdown after {stats.processed}/{total} files"
                    )
                    return stats.copy()

                emit(self.sink, BatchProgress(
                    processed=stats.processed,
                    total=total,
                    added=stats.added,
                    duplicates=stats.duplicates,
                    errors=stats.errors,
                ))
                await self._sleep(self.yield_seconds)

            emit(self.sink, BatchComplete(
                added=stats.added,
                duplicates=stats.duplicates,
                errors=stats.errors,
                total=total,
            ))

            return stats.copy()

    def shutdown(self) -> None:
        """Stop emitting events once the in-flight sub-batch is done."""
        self._shutting_down = True

    def close(self) -> None:
        """Shut down and release the worker thread."""
        self.shutdown()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
