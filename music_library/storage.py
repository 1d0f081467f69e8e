"""
Storage module for persisting songs and playlists in SQLite.
"""

import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from music_library.config import Config
from music_library.exceptions import DuplicateError
from music_library.metadata import SongMetadata
from music_library.models import ALL_SONGS_PLAYLIST, Base, Playlist, PlaylistSong, Song
from music_library.scanner import normalize_path


logger = logging.getLogger(__name__)


SONG_FIELDS = (
    "id", "title", "artist", "album", "duration", "file_path",
    "file_size", "album_art_format", "date_added", "play_count", "last_played",
)


class LibraryStorage:
    """Storage manager for the song and playlist tables."""

    def __init__(self, config: Optional[Config] = None, db_path: Optional[str] = None):
        """Initialize storage manager.

        Args:
            config: Configuration object.
            db_path: Database file or ":memory:". Uses config if None.
        """
        self.config = config or Config()
        self.db_path = db_path or self.config.database_path
        self._engine = self._create_engine(self.db_path)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

        Base.metadata.create_all(self._engine)
        self._ensure_default_playlist()

        logger.info(f"Library database ready: {self.db_path}")

    @staticmethod
    def _create_engine(db_path: str) -> Engine:
        """Create the SQLAlchemy engine.

        The import worker runs on its own thread, so connections must be
        shareable across threads. An in-memory database needs a single
        static connection or every thread would see its own empty copy.
        """
        connect_args = {"check_same_thread": False, "timeout": 30}

        if db_path == ":memory:":
            return create_engine(
                "sqlite:///:memory:",
                connect_args=connect_args,
                poolclass=StaticPool,
            )

        directory = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(directory, exist_ok=True)
        return create_engine(f"sqlite:///{db_path}", connect_args=connect_args)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Provide a transactional session scope."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _ensure_default_playlist(self) -> None:
        with self.session() as session:
            exists = session.scalar(
                select(Playlist.id).where(Playlist.name == ALL_SONGS_PLAYLIST)
            )
            if exists is None:
                session.add(Playlist(name=ALL_SONGS_PLAYLIST))

    @staticmethod
    def _song_to_dict(song: Song) -> Dict[str, Any]:
        return {name: getattr(song, name) for name in SONG_FIELDS}

    @staticmethod
    def _next_position(session: Session, playlist_id: int) -> int:
        max_position = session.scalar(
            select(func.max(PlaylistSong.position)).where(
                PlaylistSong.playlist_id == playlist_id
            )
        )
        return (max_position or 0) + 1

    def song_exists_by_path(self, file_path: str) -> bool:
        """Check if a song with this file path is stored.

        Args:
            file_path: Path of the audio file.

        Returns:
            True if the normalized path is already in the library.
        """
        with self.session() as session:
            song_id = session.scalar(
                select(Song.id).where(Song.file_path == normalize_path(file_path))
            )
            return song_id is not None

    def insert_song(self, metadata: SongMetadata) -> int:
        """Insert a new song and append it to the "All Songs" playlist.

        Args:
            metadata: Extracted song metadata.

        Returns:
            ID of the inserted song.

        Raises:
            DuplicateError: If a song with the same path already exists.
        """
        file_path = normalize_path(metadata.file_path)

        try:
            with self.session() as session:
                existing = session.scalar(select(Song.id).where(Song.file_path == file_path))
                if existing is not None:
                    raise DuplicateError(file_path)

                song = Song(
                    title=metadata.title,
                    artist=metadata.artist,
                    album=metadata.album,
                    duration=metadata.duration,
                    file_path=file_path,
                    file_size=metadata.file_size,
                    album_art=metadata.cover_image,
                    album_art_format=metadata.cover_format,
                )
                session.add(song)
                session.flush()

                playlist_id = session.scalar(
                    select(Playlist.id).where(Playlist.name == ALL_SONGS_PLAYLIST)
                )
                if playlist_id is not None:
                    session.add(PlaylistSong(
                        playlist_id=playlist_id,
                        song_id=song.id,
                        position=self._next_position(session, playlist_id),
                    ))

                song_id = song.id
        except IntegrityError as e:
            # Another writer inserted the same path between check and insert
            raise DuplicateError(file_path) from e

        logger.debug(f"Inserted song {song_id}: {file_path}")
        return song_id

    def get_song_by_path(self, file_path: str) -> Optional[Dict[str, Any]]:
        """Get a song by file path.

        Args:
            file_path: Path of the audio file.

        Returns:
            Song dictionary or None.
        """
        with self.session() as session:
            song = session.scalar(
                select(Song).where(Song.file_path == normalize_path(file_path))
            )
            return self._song_to_dict(song) if song else None

    def get_all_songs(self) -> List[Dict[str, Any]]:
        """Get all songs ordered by artist, album and title."""
        with self.session() as session:
            songs = session.scalars(
                select(Song).order_by(Song.artist, Song.album, Song.title)
            ).all()
            return [self._song_to_dict(song) for song in songs]

    def get_song_count(self) -> int:
        """Get number of songs in the library."""
        with self.session() as session:
            return session.scalar(select(func.count(Song.id))) or 0

    def delete_song(self, song_id: int) -> bool:
        """Delete a song and its playlist memberships.

        Returns:
            True if a song was deleted.
        """
        with self.session() as session:
            song = session.get(Song, song_id)
            if song is None:
                return False
            session.delete(song)
            return True

    def create_playlist(self, name: str) -> int:
        """Create a playlist.

        Args:
            name: Unique playlist name.

        Returns:
            ID of the new playlist.

        Raises:
            DuplicateError: If a playlist with this name exists.
        """
        try:
            with self.session() as session:
                if session.scalar(select(Playlist.id).where(Playlist.name == name)) is not None:
                    raise DuplicateError(name)
                playlist = Playlist(name=name)
                session.add(playlist)
                session.flush()
                return playlist.id
        except IntegrityError as e:
            raise DuplicateError(name) from e

    def get_playlists(self) -> List[Dict[str, Any]]:
        """Get all playlists with their song counts."""
        with self.session() as session:
            rows = session.execute(
                select(Playlist.id, Playlist.name, func.count(PlaylistSong.id))
                .outerjoin(PlaylistSong, PlaylistSong.playlist_id == Playlist.id)
                .group_by(Playlist.id)
                .order_by(Playlist.id)
            ).all()
            return [
                {"id": playlist_id, "name": name, "song_count": count}
                for playlist_id, name, count in rows
            ]

    def add_song_to_playlist(self, playlist_id: int, song_id: int) -> bool:
        """Append a song to a playlist.

        Returns:
            False if the song was already in the playlist.
        """
        with self.session() as session:
            existing = session.scalar(
                select(PlaylistSong.id).where(
                    PlaylistSong.playlist_id == playlist_id,
                    PlaylistSong.song_id == song_id,
                )
            )
            if existing is not None:
                return False

            session.add(PlaylistSong(
                playlist_id=playlist_id,
                song_id=song_id,
                position=self._next_position(session, playlist_id),
            ))
            return True

    def get_playlist_songs(self, playlist_id: int) -> List[Dict[str, Any]]:
        """Get the songs of a playlist in playlist order."""
        with self.session() as session:
            songs = session.scalars(
                select(Song)
                .join(PlaylistSong, PlaylistSong.song_id == Song.id)
                .where(PlaylistSong.playlist_id == playlist_id)
                .order_by(PlaylistSong.position)
            ).all()
            return [self._song_to_dict(song) for song in songs]

    def get_playlist_id(self, name: str) -> Optional[int]:
        """Look up a playlist ID by name."""
        with self.session() as session:
            return session.scalar(select(Playlist.id).where(Playlist.name == name))

    def close(self) -> None:
        """Dispose of the database engine."""
        self._engine.dispose()
        logger.debug("Library database closed")
