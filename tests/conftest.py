"""
Shared fixtures and test doubles.
"""

import asyncio
import os
import struct

import pytest

from music_library.config import Config
from music_library.exceptions import ExtractionError
from music_library.metadata import SongMetadata
from music_library.storage import LibraryStorage


def write_file(path, content=b'test content'):
    """Create a file, including missing parent folders."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as f:
        f.write(content)
    return str(path)


def write_wav(path, seconds=1.0, sample_rate=8000):
    """Write a silent 16-bit mono WAV file."""
    n_samples = int(seconds * sample_rate)
    data_size = n_samples * 2
    header = b'RIFF' + struct.pack('<I', 36 + data_size) + b'WAVEfmt '
    header += struct.pack('<IHHIIHH', 16, 1, 1, sample_rate, sample_rate * 2, 2, 16)
    header += b'data' + struct.pack('<I', data_size)
    return write_file(path, header + b'\x00' * data_size)


class FakeExtractor:
    """Extractor that fails for any path containing "corrupt"."""

    def __init__(self):
        self.calls = []

    def extract(self, file_path):
        self.calls.append(file_path)
        if "corrupt" in os.path.basename(file_path):
            raise ExtractionError(file_path, "corrupt file")
        stem = os.path.splitext(os.path.basename(file_path))[0]
        return SongMetadata(file_path=file_path, title=stem, duration=120.0)


class RecordingSink:
    """Notification sink that keeps every event."""

    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)

    def of_type(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]


class FakeSleep:
    """Records requested delays and only yields to the event loop."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeObserver:
    """Stand-in for a watchdog observer."""

    def __init__(self):
        self.scheduled = {}
        self.unscheduled = []
        self.started = False
        self.stopped = False
        self.fail_paths = set()

    def schedule(self, handler, path, recursive=False):
        if path in self.fail_paths:
            raise OSError("inotify watch limit reached")
        watch = object()
        self.scheduled[path] = (handler, recursive, watch)
        return watch

    def unschedule(self, watch):
        self.unscheduled.append(watch)

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass


@pytest.fixture
def config(tmp_path):
    """Configuration writing its database and settings below tmp_path."""
    config = Config()
    config.set("library.database_path", str(tmp_path / "data" / "music.db"))
    config.set("library.settings_path", str(tmp_path / "data" / "settings.yaml"))
    return config


@pytest.fixture
def storage(config):
    storage = LibraryStorage(config)
    yield storage
    storage.close()


@pytest.fixture
def music_dir(tmp_path):
    path = tmp_path / "music"
    path.mkdir()
    return path
