"""
Exceptions raised by the music library.
"""

from typing import Optional


class LibraryError(Exception):
    """Base class for music library errors."""


class AlreadyWatched(LibraryError):
    """A folder is already registered for watching."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Folder is already being watched: {path}")


class DirectoryNotFound(LibraryError):
    """A scan or watch target does not exist or cannot be read."""

    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        self.reason = reason or "Directory does not exist"
        super().__init__(f"{self.reason}: {path}")


class DuplicateError(LibraryError):
    """A record with the same unique key is already stored."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Already exists in library: {key}")


class ExtractionError(LibraryError):
    """Metadata could not be read from an audio file."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not read metadata from {path}: {reason}")


class WatcherError(LibraryError):
    """The filesystem notification backend failed for a path."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot watch {path}: {reason}")


class SettingsError(LibraryError):
    """The settings file could not be written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot save settings to {path}: {reason}")
