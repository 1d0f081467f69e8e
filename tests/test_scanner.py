"""
Tests for the scanner module.
"""

import os

import pytest

from music_library.config import Config
from music_library.exceptions import DirectoryNotFound
from music_library.scanner import DirectoryScanner, media_type, normalize_path

from conftest import write_file


class TestDirectoryScanner:
    """Tests for DirectoryScanner class."""

    @pytest.fixture
    def scanner(self):
        return DirectoryScanner(Config())

    @pytest.fixture
    def temp_music_dir(self, music_dir):
        """Create music directory with test files."""
        test_files = [
            "test1.mp3",
            "test2.flac",
            "test3.wav",
            "test4.m4a",
            "albums/x/test5.aac",
            "albums/x/y/z/test6.ogg",
            "notes.txt",  # Should be ignored
            "cover.jpg",  # Should be ignored
        ]
        for filename in test_files:
            write_file(os.path.join(music_dir, filename))
        return str(music_dir)

    def test_scan_returns_only_audio_files(self, scanner, music_dir):
        """Test the a.mp3 / b.txt / sub/c.flac layout."""
        a = write_file(os.path.join(music_dir, "a.mp3"))
        write_file(os.path.join(music_dir, "b.txt"))
        c = write_file(os.path.join(music_dir, "sub", "c.flac"))

        result = scanner.scan(str(music_dir))

        assert set(result.files) == {a, c}
        assert result.errors == []

    def test_scan_recurses_all_levels(self, scanner, temp_music_dir):
        result = scanner.scan(temp_music_dir)

        assert len(result) == 6
        extensions = {media_type(f) for f in result.files}
        assert extensions == {"mp3", "flac", "wav", "m4a", "aac", "ogg"}

    def test_scan_returns_absolute_paths(self, scanner, temp_music_dir, monkeypatch):
        monkeypatch.chdir(os.path.dirname(temp_music_dir))

        result = scanner.scan(os.path.basename(temp_music_dir))

        assert all(os.path.isabs(f) for f in result.files)
        assert result.root == normalize_path(temp_music_dir)

    def test_extension_match_is_case_insensitive(self, scanner, music_dir):
        write_file(os.path.join(music_dir, "LOUD.MP3"))
        write_file(os.path.join(music_dir, "Mixed.Flac"))

        result = scanner.scan(str(music_dir))

        assert len(result) == 2

    def test_scan_nonexistent_dir(self, scanner, tmp_path):
        """Test scanning nonexistent directory."""
        with pytest.raises(DirectoryNotFound):
            scanner.scan(str(tmp_path / "missing"))

    def test_scan_file_instead_of_dir(self, scanner, music_dir):
        path = write_file(os.path.join(music_dir, "a.mp3"))

        with pytest.raises(DirectoryNotFound):
            scanner.scan(path)

    def test_broken_symlink_is_skipped(self, scanner, music_dir):
        write_file(os.path.join(music_dir, "real.mp3"))
        os.symlink(os.path.join(music_dir, "gone.mp3"), os.path.join(music_dir, "broken.mp3"))

        result = scanner.scan(str(music_dir))

        assert [os.path.basename(f) for f in result.files] == ["real.mp3"]

    def test_symlink_loop_does_not_hang(self, scanner, music_dir):
        write_file(os.path.join(music_dir, "sub", "a.mp3"))
        os.symlink(str(music_dir), os.path.join(music_dir, "sub", "loop"))

        result = scanner.scan(str(music_dir))

        assert len(result) == 1

    @pytest.mark.skipif(
        hasattr(os, "geteuid") and os.geteuid() == 0,
        reason="root can read any directory"
    )
    def test_unreadable_directory_is_recorded(self, scanner, music_dir):
        write_file(os.path.join(music_dir, "ok", "a.mp3"))
        locked = os.path.join(music_dir, "locked")
        write_file(os.path.join(locked, "b.mp3"))
        write_file(os.path.join(music_dir, "zz", "c.mp3"))

        os.chmod(locked, 0)
        try:
            result = scanner.scan(str(music_dir))
        finally:
            os.chmod(locked, 0o755)

        names = {os.path.basename(f) for f in result.files}
        assert names == {"a.mp3", "c.mp3"}
        assert len(result.errors) == 1
        assert "locked" in result.errors[0]

    def test_custom_formats(self, music_dir):
        config = Config()
        config.set("scanner.supported_formats", [".MP3"])
        scanner = DirectoryScanner(config)
        write_file(os.path.join(music_dir, "a.mp3"))
        write_file(os.path.join(music_dir, "b.flac"))

        assert scanner.get_file_count(str(music_dir)) == 1

    def test_get_file_count(self, scanner, temp_music_dir):
        """Test file count."""
        assert scanner.get_file_count(temp_music_dir) == 6


class TestPathHelpers:

    def test_normalize_path(self, tmp_path):
        messy = os.path.join(str(tmp_path), "a", "..", "b", ".", "")

        assert normalize_path(messy) == os.path.join(str(tmp_path), "b")

    def test_media_type(self):
        assert media_type("/x/Song.FLAC") == "flac"
        assert media_type("/x/README") == ""
        assert media_type("/x.dir/file") == ""
