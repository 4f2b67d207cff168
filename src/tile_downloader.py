#!/usr/bin/env python3
"""
Map Tile Downloader - Command Line Entry Point
Downloads the tiles covering an area into the offline cache
"""

import sys
import os
import logging

# Add src directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, current_dir)

from core.tile_download_manager import build_parser, load_manager
from exceptions.tile_downloader_exceptions import TileDownloaderException


def main(argv=None):
    """Main entry point for the tile downloader application"""
    args = build_parser().parse_args(argv)
    try:
        manager = load_manager(args)
        logging.getLogger(__name__).info("Starting MapTileDownloader")
        ok = manager.run_from_command_line(args)
    except KeyboardInterrupt:
        print("\nDownload interrupted by user.")
        sys.exit(1)
    except TileDownloaderException as e:
        print(f"\nError: {e}")
        sys.exit(1)

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
