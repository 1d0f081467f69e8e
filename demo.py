#!/usr/bin/env python
"""
Demo script that watches a folder: initial import -> new file -> burst of files
"""

import asyncio
import os
import struct
import tempfile
import logging

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def write_silent_wav(path: str, seconds: float = 1.0, sample_rate: int = 8000) -> None:
    """Write a small silent 16-bit mono WAV file."""
    n_samples = int(seconds * sample_rate)
    data_size = n_samples * 2

    with open(path, 'wb') as f:
        f.write(b'RIFF')
        f.write(struct.pack('<I', 36 + data_size))
        f.write(b'WAVEfmt ')
        f.write(struct.pack('<IHHIIHH', 16, 1, 1, sample_rate, sample_rate * 2, 2, 16))
        f.write(b'data')
        f.write(struct.pack('<I', data_size))
        f.write(b'\x00' * data_size)


def create_sample_audio_files(output_dir: str, num_files: int, prefix: str = "demo_track"):
    """Create sample audio files for demo."""
    os.makedirs(output_dir, exist_ok=True)

    for i in range(num_files):
        write_silent_wav(os.path.join(output_dir, f"{prefix}_{i:02d}.wav"))

    logger.info(f"Created {num_files} sample files in {output_dir}")


async def run_demo():
    """Run the watch folder demo."""
    from music_library.config import Config
    from music_library.library import MusicLibrary

    with tempfile.TemporaryDirectory() as tmpdir:
        music_dir = os.path.join(tmpdir, "music")
        create_sample_audio_files(music_dir, num_files=12)

        config = Config()
        config.set("library.database_path", os.path.join(tmpdir, "data", "music.db"))
        config.set("library.settings_path", os.path.join(tmpdir, "data", "settings.yaml"))

        library = MusicLibrary(config)
        await library.start()

        try:
            # Step 1: initial import
            logger.info("=" * 50)
            logger.info("Step 1: Adding watched folder")
            result = await library.add_watched_folder(music_dir)
            logger.info(f"Initial import: {result.statistics}")

            # Step 2: a single new file
            logger.info("=" * 50)
            logger.info("Step 2: Copying one new file")
            write_silent_wav(os.path.join(music_dir, "single.wav"))
            await asyncio.sleep(2)
            await library.queue.join()

            # Step 3: a burst of files is imported as one batch
            logger.info("=" * 50)
            logger.info("Step 3: Copying a burst of files")
            create_sample_audio_files(os.path.join(music_dir, "new_album"), 5, prefix="burst")
            await asyncio.sleep(2)
            await library.queue.join()

            logger.info("=" * 50)
            logger.info(f"Library now holds {library.storage.get_song_count()} songs")
        finally:
            await library.close()


if __name__ == "__main__":
    asyncio.run(run_demo())
