"""
Import notifications delivered to the user interface.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Union


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchStarted:
    total: int
    is_initial_scan: bool


@dataclass(frozen=True)
class BatchProgress:
    processed: int
    total: int
    added: int
    duplicates: int
    errors: int


@dataclass(frozen=True)
class BatchComplete:
    added: int
    duplicates: int
    errors: int
    total: int


@dataclass(frozen=True)
class SingleFileAdded:
    path: str

    @property
    def display_name(self) -> str:
        return os.path.basename(self.path)


ImportEvent = Union[BatchStarted, BatchProgress, BatchComplete, SingleFileAdded]


class NotificationSink:
    """Receives import events. The default implementation logs them."""

    def notify(self, event: ImportEvent) -> None:
        if isinstance(event, BatchStarted):
            kind = "Scanning folder" if event.is_initial_scan else "Importing new files"
            logger.info(f"{kind}: {event.total} files")
        elif isinstance(event, BatchProgress):
            logger.debug(f"Imported {event.processed}/{event.total}")
        elif isinstance(event, BatchComplete):
            logger.info(
                f"Import complete: {event.added} added, {event.duplicates} duplicates, "
                f"{event.errors} errors ({event.total} files)"
            )
        elif isinstance(event, SingleFileAdded):
            logger.info(f"New song added: {event.display_name}")


class CallbackSink(NotificationSink):
    """Forwards every event to a callable."""

    def __init__(self, callback: Callable[[ImportEvent], None]):
        self.callback = callback

    def notify(self, event: ImportEvent) -> None:
        self.callback(event)


def emit(sink: NotificationSink, event: ImportEvent) -> None:
    """Deliver an event, logging failures of the receiving side."""
    try:
        sink.notify(event)
    except Exception:
        logger.exception(f"Notification sink failed for {type(event).__name__}")
