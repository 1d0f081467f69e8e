"""
Tests for the file watcher module.
"""

import os

import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from music_library.config import Config
from music_library.exceptions import WatcherError
from music_library.watcher import AudioFileEventHandler, FileSystemWatcher

from conftest import FakeObserver


EXTENSIONS = ["mp3", "flac", "wav", "m4a", "aac", "ogg"]


class TestAudioFileEventHandler:
    """Tests for AudioFileEventHandler class."""

    @pytest.fixture
    def added(self):
        return []

    @pytest.fixture
    def handler(self, added):
        return AudioFileEventHandler(added.append, EXTENSIONS)

    def test_created_audio_file(self, handler, added):
        handler.dispatch(FileCreatedEvent("/music/song.MP3"))

        assert added == ["/music/song.MP3"]

    def test_non_audio_file_ignored(self, handler, added):
        handler.dispatch(FileCreatedEvent("/music/cover.jpg"))
        handler.dispatch(FileCreatedEvent("/music/song.mp3.part"))

        assert added == []

    def test_hidden_file_ignored(self, handler, added):
        handler.dispatch(FileCreatedEvent("/music/.song.mp3"))

        assert added == []

    def test_hidden_files_allowed_when_configured(self, added):
        handler = AudioFileEventHandler(added.append, EXTENSIONS, ignore_hidden=False)

        handler.dispatch(FileCreatedEvent("/music/.song.mp3"))

        assert added == ["/music/.song.mp3"]

    def test_directory_ignored(self, handler, added):
        handler.dispatch(DirCreatedEvent("/music/new.mp3"))

        assert added == []

    def test_moved_in_file_uses_destination(self, handler, added):
        handler.dispatch(FileMovedEvent("/music/.download.tmp", "/music/song.flac"))

        assert added == ["/music/song.flac"]

    def test_deleted_file_is_only_logged(self, handler, added, caplog):
        with caplog.at_level("INFO"):
            handler.dispatch(FileDeletedEvent("/music/song.mp3"))

        assert added == []
        assert "File removed: /music/song.mp3" in caplog.text

    def test_modified_file_ignored(self, handler, added):
        handler.dispatch(FileModifiedEvent("/music/song.mp3"))

        assert added == []

    def test_callback_failure_is_contained(self):
        def on_added(path):
            raise RuntimeError("queue closed")

        handler = AudioFileEventHandler(on_added, EXTENSIONS)

        handler.dispatch(FileCreatedEvent("/music/song.mp3"))


class TestFileSystemWatcher:
    """Tests for FileSystemWatcher class."""

    @pytest.fixture
    def observer(self):
        return FakeObserver()

    @pytest.fixture
    def watcher(self, observer):
        return FileSystemWatcher(lambda path: None, Config(), observer_factory=lambda: observer)

    def test_watch_schedules_recursive(self, watcher, observer, music_dir):
        watcher.watch(str(music_dir))

        handler, recursive, _ = observer.scheduled[str(music_dir)]
        assert handler is watcher.handler
        assert recursive is True
        assert watcher.watched_paths == [str(music_dir)]

    def test_watch_twice_schedules_once(self, watcher, observer, music_dir):
        watcher.watch(str(music_dir))
        watcher.watch(os.path.join(str(music_dir), "."))

        assert len(observer.scheduled) == 1

    def test_watch_missing_directory(self, watcher, tmp_path):
        with pytest.raises(WatcherError):
            watcher.watch(str(tmp_path / "missing"))

        assert watcher.watched_paths == []

    def test_backend_failure_isolated_to_path(self, watcher, observer, tmp_path):
        good = tmp_path / "good"
        bad = tmp_path / "bad"
        good.mkdir()
        bad.mkdir()
        observer.fail_paths.add(str(bad))

        with pytest.raises(WatcherError) as exc_info:
            watcher.watch(str(bad))
        watcher.watch(str(good))

        assert "inotify" in str(exc_info.value)
        assert watcher.watched_paths == [str(good)]

    def test_unwatch(self, watcher, observer, music_dir):
        watcher.watch(str(music_dir))
        _, _, watch = observer.scheduled[str(music_dir)]

        assert watcher.unwatch(str(music_dir)) is True
        assert observer.unscheduled == [watch]
        assert watcher.unwatch(str(music_dir)) is False
        assert watcher.watched_paths == []

    def test_start_and_stop(self, watcher, observer, music_dir):
        watcher.start()
        watcher.start()
        watcher.watch(str(music_dir))

        assert watcher.is_running
        assert observer.started

        watcher.stop()

        assert not watcher.is_running
        assert observer.stopped
        assert watcher.watched_paths == []

    def test_handler_uses_configured_formats(self, observer):
        config = Config()
        config.set("scanner.supported_formats", ["mp3"])
        added = []
        watcher = FileSystemWatcher(added.append, config, observer_factory=lambda: observer)

        watcher.handler.dispatch(FileCreatedEvent("/music/a.flac"))
        watcher.handler.dispatch(FileCreatedEvent("/music/a.mp3"))

        assert added == ["/music/a.mp3"]
