#!/usr/bin/env python
"""
Main entry point for Music Library.
"""

from music_library.cli import main

if __name__ == "__main__":
    main()
