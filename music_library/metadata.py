"""
Metadata extraction module for audio files.
"""

import base64
import logging
import os
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from mutagen import File as MutagenFile
from mutagen.flac import Picture

from music_library.config import Config
from music_library.exceptions import ExtractionError


logger = logging.getLogger(__name__)


UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"

# Tag keys for ID3, Vorbis comments and MP4 atoms
TAG_MAPPINGS = {
    "title": ["TIT2", "title", "\xa9nam"],
    "artist": ["TPE1", "artist", "\xa9ART"],
    "album": ["TALB", "album", "\xa9alb"],
}


@dataclass
class SongMetadata:
    """Metadata for one audio file, ready to be stored."""
    file_path: str
    title: str
    artist: str = UNKNOWN_ARTIST
    album: str = UNKNOWN_ALBUM
    duration: float = 0.0
    file_size: int = 0
    cover_image: Optional[bytes] = None
    cover_format: Optional[str] = None


class MetadataExtractor:
    """Extractor for audio file metadata using mutagen."""

    def __init__(self, config: Optional[Config] = None):
        """Initialize metadata extractor.

        Args:
            config: Configuration object.
        """
        self.config = config or Config()
        self.normalize_strings = self.config.get("metadata.normalize_strings", True)

    def normalize_string(self, s: Any) -> Optional[str]:
        """Normalize string for consistency.

        Args:
            s: String to normalize.

        Returns:
            Normalized string or None.
        """
        if s is None:
            return None

        s = str(s)

        if self.normalize_strings:
            s = unicodedata.normalize('NFC', s)
            s = s.strip()
            s = re.sub(r'\s+', ' ', s)

        return s if s else None

    def extract(self, file_path: str) -> SongMetadata:
        """Extract metadata from audio file.

        Args:
            file_path: Path to audio file.

        Returns:
            SongMetadata with tag values or fallbacks for missing tags.

        Raises:
            ExtractionError: If the file is missing, unreadable or not a
                supported audio format.
        """
        if not os.path.isfile(file_path):
            raise ExtractionError(file_path, "file not found")

        try:
            audio = MutagenFile(file_path)
        except Exception as e:
            raise ExtractionError(file_path, str(e) or type(e).__name__) from e

        if audio is None:
            raise ExtractionError(file_path, "unsupported audio format")

        try:
            file_size = os.path.getsize(file_path)
        except OSError as e:
            raise ExtractionError(file_path, str(e)) from e

        info = getattr(audio, "info", None)
        duration = getattr(info, "length", None) or 0.0

        tags = audio.tags or {}
        values = {key: self._first_tag(tags, keys) for key, keys in TAG_MAPPINGS.items()}
        cover_image, cover_format = self._extract_cover(audio)

        stem = os.path.splitext(os.path.basename(file_path))[0]

        return SongMetadata(
            file_path=file_path,
            title=values["title"] or stem,
            artist=values["artist"] or UNKNOWN_ARTIST,
            album=values["album"] or UNKNOWN_ALBUM,
            duration=float(duration),
            file_size=file_size,
            cover_image=cover_image,
            cover_format=cover_format,
        )

    def _first_tag(self, tags: Any, keys: list) -> Optional[str]:
        """Return the first non-empty value among tag keys."""
        for key in keys:
            try:
                if key not in tags:
                    continue
                value = tags[key]
            except (KeyError, ValueError, TypeError):
                continue

            if hasattr(value, 'text'):
                value = value.text[0] if value.text else None
            elif isinstance(value, list):
                value = value[0] if value else None

            value = self.normalize_string(value)
            if value:
                return value

        return None

    def _extract_cover(self, audio: Any) -> Tuple[Optional[bytes], Optional[str]]:
        """Return the first embedded picture and its MIME type."""
        # FLAC
        pictures = getattr(audio, "pictures", None)
        if pictures:
            return pictures[0].data, pictures[0].mime

        tags = audio.tags
        if not tags:
            return None, None

        # ID3
        if hasattr(tags, "getall"):
            frames = tags.getall("APIC")
            if frames:
                return frames[0].data, frames[0].mime

        # MP4
        try:
            covers = tags.get("covr")
        except (AttributeError, ValueError):
            covers = None
        if covers:
            cover = covers[0]
            image_format = getattr(cover, "imageformat", None)
            mime = "image/png" if image_format == 14 else "image/jpeg"
            return bytes(cover), mime

        # Ogg Vorbis stores base64 FLAC picture blocks
        try:
            encoded = tags.get("metadata_block_picture")
        except (AttributeError, ValueError):
            encoded = None
        if encoded:
            try:
                picture = Picture(base64.b64decode(encoded[0]))
                return picture.data, picture.mime
            except Exception as e:
                logger.debug(f"Unreadable embedded picture: {e}")

        return None, None


def get_duration_formatted(seconds: Optional[float]) -> Optional[str]:
    """Format duration in seconds to MM:SS format.

    Args:
        seconds: Duration in seconds.

    Returns:
        Formatted string or None.
    """
    if seconds is None:
        return None

    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"
