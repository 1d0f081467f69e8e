"""
Scanner module for finding audio files below a directory.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

from music_library.config import Config
from music_library.exceptions import DirectoryNotFound


logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Return the absolute, normalized form of a path.

    Songs and watched folders are keyed by this form.
    """
    return os.path.normpath(os.path.abspath(os.path.expanduser(os.fspath(path))))


def media_type(path: str) -> str:
    """Return the lower-case extension of a path without the dot."""
    filename = os.path.basename(path)
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


@dataclass
class ScanResult:
    """Result of a directory scan."""
    root: str
    files: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.files)


class DirectoryScanner:
    """Recursive scanner for audio files."""

    def __init__(self, config: Optional[Config] = None):
        """Initialize scanner.

        Args:
            config: Configuration object.
        """
        self.config = config or Config()
        self.supported_formats = set(self.config.supported_formats)

    def is_audio_file(self, path: str) -> bool:
        """Check whether a path has an allowed audio extension."""
        return media_type(path) in self.supported_formats

    def find_audio_files(
        self,
        root_dir: str,
        errors: Optional[List[str]] = None
    ) -> Iterator[Path]:
        """Recursively find all audio files in directory.

        Symlinked directories are not followed. A directory that cannot be
        listed is reported to ``errors`` and its siblings are still visited.

        Args:
            root_dir: Root directory to search.
            errors: Optional list collecting per-directory read failures.

        Yields:
            Path objects for each audio file found.
        """
        def on_error(exc: OSError) -> None:
            message = f"Cannot read directory {exc.filename}: {exc.strerror or exc}"
            logger.warning(message)
            if errors is not None:
                errors.append(message)

        for dirpath, _, filenames in os.walk(root_dir, onerror=on_error):
            for filename in filenames:
                if not self.is_audio_file(filename):
                    continue
                file_path = os.path.join(dirpath, filename)
                # Broken symlinks and special files are skipped
                if os.path.isfile(file_path):
                    yield Path(file_path)

    def scan(self, root_dir: str) -> ScanResult:
        """Scan directory and collect audio file paths.

        Args:
            root_dir: Root directory to scan.

        Returns:
            ScanResult with absolute file paths and per-directory errors.

        Raises:
            DirectoryNotFound: If root_dir does not exist.
        """
        root = normalize_path(root_dir)

        if not os.path.isdir(root):
            raise DirectoryNotFound(root)

        logger.info(f"Scanning for audio files in: {root}")

        result = ScanResult(root=root)
        for audio_path in self.find_audio_files(root, errors=result.errors):
            result.files.append(str(audio_path))

        logger.info(
            f"Scan complete. Found {len(result.files)} audio files "
            f"({len(result.errors)} unreadable directories)."
        )

        return result

    def get_file_count(self, root_dir: str) -> int:
        """Get count of audio files in directory.

        Args:
            root_dir: Root directory to count.

        Returns:
            Number of audio files.
        """
        return sum(1 for _ in self.find_audio_files(normalize_path(root_dir)))
