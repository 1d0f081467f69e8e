"""
Import queue that coalesces bursts of new-file events into batches.
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Deque, List, Optional

from music_library.config import Config
from music_library.events import NotificationSink, SingleFileAdded, emit
from music_library.pipeline import BulkImportPipeline, ImportResult, SleepFunc


logger = logging.getLogger(__name__)


class QueueState(Enum):
    IDLE = "idle"
    QUEUING = "queuing"
    DRAINING = "draining"


class ImportQueue:
    """FIFO of newly detected files, drained after a settle window.

    All methods must be called from the event loop thread. The first
    request starts a drain that waits ``debounce_seconds`` so that a bulk
    copy into a watched folder is imported as one batch. Paths arriving
    while a drain is importing are left for the next cycle.
    """

    def __init__(
        self,
        pipeline: BulkImportPipeline,
        sink: Optional[NotificationSink] = None,
        config: Optional[Config] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize the queue.

        Args:
            pipeline: Pipeline used for single and bulk imports.
            sink: Receiver of single-file notifications. Defaults to the
                pipeline's sink.
            config: Configuration object.
            sleep: Coroutine used for the settle window.
        """
        self.config = config or Config()
        self.pipeline = pipeline
        self.sink = sink or pipeline.sink
        self.debounce_seconds = self.config.debounce_seconds
        self._sleep = sleep or asyncio.sleep

        self._pending: Deque[str] = deque()
        self._state = QueueState.IDLE
        self._processing = False
        self._drain_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, path: str) -> None:
        """Add a newly detected file and request a drain."""
        if self._closed:
            logger.debug(f"Import queue closed, ignoring: {path}")
            return

        logger.info(f"New audio file detected: {path}")
        self._pending.append(path)
        self.request_drain()

    def request_drain(self) -> None:
        """Schedule a drain unless one is already scheduled or running."""
        if self._closed or self._processing or not self._pending:
            return

        self._processing = True
        self._state = QueueState.QUEUING
        self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        try:
            await self._sleep(self.debounce_seconds)

            batch = [self._pending.popleft() for _ in range(len(self._pending))]
            self._state = QueueState.DRAINING

            try:
                await self._process(batch)
            except Exception:
                logger.exception(f"Unexpected error importing {len(batch)} queued files")
        finally:
            self._state = QueueState.IDLE
            self._processing = False
            self._drain_task = None

        if self._pending:
            self.request_drain()

    async def _process(self, batch: List[str]) -> None:
        if len(batch) == 1:
            path = batch[0]
            result = await self.pipeline.import_path(path)
            if result is ImportResult.ADDED:
                emit(self.sink, SingleFileAdded(path=path))
            elif result is ImportResult.DUPLICATE:
                logger.debug(f"Already in library: {path}")
            else:
                logger.warning(f"Could not import new file: {path}")
        elif batch:
            await self.pipeline.run(batch, is_initial_scan=False)

    async def join(self) -> None:
        """Wait until no drain is scheduled or running."""
        while self._drain_task is not None:
            await asyncio.wait({self._drain_task})

    async def aclose(self) -> None:
        """Stop draining.

        A drain still waiting out its settle window is cancelled and its
        files are dropped. A drain that is importing finishes its current
        sub-batch without emitting further events.
        """
        if self._closed:
            return
        self._closed = True

        task = self._drain_task
        if task is None:
            return

        if self._state is QueueState.QUEUING:
            task.cancel()
            logger.info(f"Import queue closed, dropping {len(self._pending)} pending files")
        else:
            self.pipeline.shutdown()

        await asyncio.wait({task})
        self._pending.clear()
