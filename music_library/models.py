"""
SQLAlchemy models for songs and playlists.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, LargeBinary, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


ALL_SONGS_PLAYLIST = "All Songs"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class Song(Base):
    """A song in the library, keyed by its normalized file path."""
    __tablename__ = 'songs'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    artist: Mapped[Optional[str]] = mapped_column(String(512), nullable=True, index=True)
    album: Mapped[Optional[str]] = mapped_column(String(512), nullable=True, index=True)
    duration: Mapped[float] = mapped_column(Float, default=0.0)
    file_path: Mapped[str] = mapped_column(String(4096), unique=True, nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, default=0)
    album_art: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    album_art_format: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    date_added: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    play_count: Mapped[int] = mapped_column(Integer, default=0)
    last_played: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    playlist_entries: Mapped[List["PlaylistSong"]] = relationship(
        back_populates="song", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Song(id={self.id}, title='{self.title}', file_path='{self.file_path}')>"


class Playlist(Base):
    """A named, ordered collection of songs."""
    __tablename__ = 'playlists'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    entries: Mapped[List["PlaylistSong"]] = relationship(
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistSong.position",
    )


class PlaylistSong(Base):
    """Membership of a song in a playlist."""
    __tablename__ = 'playlist_songs'
    __table_args__ = (
        UniqueConstraint('playlist_id', 'song_id', name='uq_playlist_song'),
        Index('idx_playlist_songs_playlist', 'playlist_id'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    playlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey('playlists.id', ondelete='CASCADE'), nullable=False
    )
    song_id: Mapped[int] = mapped_column(
        Integer, ForeignKey('songs.id', ondelete='CASCADE'), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    added_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    playlist: Mapped["Playlist"] = relationship(back_populates="entries")
    song: Mapped["Song"] = relationship(back_populates="playlist_entries")
