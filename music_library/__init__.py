"""
Music Library - a local audio library with watched folders.

This package provides tools for:
- Scanning folders for audio files
- Extracting song metadata
- Bulk importing songs into a SQLite library
- Watching folders and importing new files as they appear
"""

__version__ = "0.1.0"
__license__ = "MIT"

from music_library.config import Config
from music_library.scanner import DirectoryScanner
from music_library.metadata import MetadataExtractor
from music_library.storage import LibraryStorage
from music_library.pipeline import BulkImportPipeline, BatchStatistics, ImportResult
from music_library.import_queue import ImportQueue
from music_library.watcher import FileSystemWatcher
from music_library.registry import PathRegistry
from music_library.library import MusicLibrary

__all__ = [
    "Config",
    "DirectoryScanner",
    "MetadataExtractor",
    "LibraryStorage",
    "BulkImportPipeline",
    "BatchStatistics",
    "ImportResult",
    "ImportQueue",
    "FileSystemWatcher",
    "PathRegistry",
    "MusicLibrary",
]
