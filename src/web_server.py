#!/usr/bin/env python3
"""
HTTP Server for MapTileDownloader

Serves cached tiles, the map source list and the download control API.
Download progress is pushed to clients as Server-Sent Events on /events.

Usage:
    python src/web_server.py [--port 8080] [--maps-directory maps]
"""

import argparse
import logging
import os
import sys

# Add src to path for imports
current_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, current_dir)

from core.download_session import DownloadSessionManager
from exceptions.tile_downloader_exceptions import TileDownloaderException
from infrastructure.logging import LoggingManager
from services.config_service import ConfigService
from services.http_server_service import HTTPServerService
from services.map_source_service import MapSourceRegistry
from services.tile_cache_service import TileCacheService
from utils.file_utils import FileUtils


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Offline map tile download server')
    parser.add_argument('--config', default='config.json', help='Path to config.json (default: config.json)')
    parser.add_argument('--port', type=int, help='Port number for the server (default: 8080)')
    parser.add_argument('--maps-directory', help='Directory for storing map tiles (default: maps)')
    parser.add_argument('--max-workers', type=int, help='Number of concurrent download workers (default: 10)')
    parser.add_argument('--rate-limit', type=int, help='Maximum number of tiles to download per second (default: 50)')
    parser.add_argument('--max-retries', type=int, help='Maximum number of attempts per tile (default: 3)')
    parser.add_argument('--log-level', help='Override logging level (DEBUG, INFO, ...)')
    return parser


def main(argv=None):
    """
    Main function to start the HTTP server.

    1. Loads config.json (if present) and applies command-line overrides
    2. Creates the cache directory and loads the map source registry
    3. Serves until interrupted; a running download is cancelled on exit
    """
    args = build_parser().parse_args(argv)
    try:
        config_service = ConfigService()
        config = config_service.load_config(args.config)
        config = config_service.apply_overrides(config, vars(args))
        LoggingManager.setup_logging(config, args.log_level)
        logger = logging.getLogger(__name__)

        settings = config_service.get_settings(config)
        FileUtils.ensure_directory_exists(settings.maps_directory)
        registry = MapSourceRegistry.load(config.get('map_sources_path'))
        cache = TileCacheService(settings.maps_directory)
        session_manager = DownloadSessionManager(settings, registry, cache=cache)

        server_service = HTTPServerService(session_manager, registry, cache, port=settings.port)
        logger.info("Workers: %d, rate limit: %d tiles/s, max retries: %d",
                    settings.max_workers, settings.rate_limit, settings.max_retries)
        server_service.start()

    except KeyboardInterrupt:
        print("\nServer stopped by user.")
    except (TileDownloaderException, OSError) as e:
        print(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
