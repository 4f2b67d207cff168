import argparse
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from core.download_session import DownloadSessionManager, SessionState
from models.download_request import AreaDownloadRequest, WorldDownloadRequest
from models.tile import GeoPoint
from services.config_service import ConfigService
from services.logging_notifier import LoggingNotifier
from services.map_source_service import MapSourceRegistry
from services.tile_cache_service import TileCacheService
from services.tile_selector import TileSelector
from utils.file_utils import FileUtils
from utils.geojson_loader import GeoJSONLoader
from infrastructure.logging import LoggingManager
from exceptions.tile_downloader_exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)


class TileDownloadManager:
    """Headless command-line front end for the download core"""

    def __init__(self, config: Dict[str, Any], registry: Optional[MapSourceRegistry] = None,
                 session_manager: Optional[DownloadSessionManager] = None):
        self.config_service = ConfigService()
        self.config = config
        self.settings = self.config_service.get_settings(config)
        self.registry = registry or MapSourceRegistry.load(config.get('map_sources_path'))
        self.cache = TileCacheService(self.settings.maps_directory)
        self.session_manager = session_manager or DownloadSessionManager(
            self.settings, self.registry, cache=self.cache)

    def list_regions(self) -> None:
        """List configured regions"""
        print("Available regions:")
        for name, region_data in self.config.get('regions', {}).items():
            description = region_data.get('description', 'No description')
            print(f"  {name}: {description}")

    def list_sources(self) -> None:
        """List registered map sources"""
        print("Available map sources:")
        for name, url in self.registry.get_sources().items():
            print(f"  {name}: {url}")

    def show_cached_tiles(self, style_name: str) -> None:
        """Print the cached tile count per zoom level of a style"""
        tiles = self.cache.enumerate(style_name)
        print(f"Cached tiles for '{style_name}' in {self.cache.style_directory(style_name)}: {len(tiles)}")
        for zoom, count in sorted(Counter(t.z for t in tiles).items()):
            print(f"  z{zoom}: {count}")

    def resolve_url(self, style: Optional[str], url: Optional[str]) -> str:
        """URL template from --url, or from a registered --style name"""
        if url:
            return url
        if style:
            template = self.registry.get_url(style)
            if template is None:
                raise ConfigurationError(f"Unknown map style '{style}' (see --list-sources)")
            return template
        raise ValidationError("Please provide --style or --url")

    def download_area(self, polygons: List[List[GeoPoint]], min_zoom: int, max_zoom: int,
                      url: str, convert_to_8bit: bool = False) -> bool:
        request = AreaDownloadRequest(polygons=polygons, min_zoom=min_zoom, max_zoom=max_zoom,
                                      map_style=url, convert_to_8bit=convert_to_8bit)
        return self._run(request)

    def download_world(self, url: str, convert_to_8bit: bool = False) -> bool:
        return self._run(WorldDownloadRequest(map_style=url, convert_to_8bit=convert_to_8bit))

    def _run(self, request) -> bool:
        """Run a session in the background and wait, cancelling on Ctrl+C"""
        FileUtils.ensure_directory_exists(self.settings.maps_directory)
        notifier = LoggingNotifier()
        session = self.session_manager.start(request, notifier)
        if session is None:
            return False

        try:
            while not session.wait(timeout=0.5):
                pass
        except KeyboardInterrupt:
            print("\nCancelling download, waiting for workers to finish...")
            self.session_manager.cancel()
            session.wait()

        if notifier.failed_tiles:
            logger.warning("Failed tiles: %s", ", ".join(notifier.failed_tiles[:20]))
        return session.state == SessionState.COMPLETED

    def run_from_command_line(self, args: argparse.Namespace) -> bool:
        """Dispatch parsed command-line arguments"""
        if args.list_regions:
            self.list_regions()
            return True
        if args.list_sources:
            self.list_sources()
            return True
        if args.cached_tiles:
            self.show_cached_tiles(args.cached_tiles)
            return True

        url = self.resolve_url(args.style, args.url)

        if args.world:
            return self.download_world(url, args.convert_to_8bit)

        min_zoom, max_zoom = args.min_zoom, args.max_zoom
        if args.region:
            polygons, region_min, region_max = self.config_service.get_region(self.config, args.region)
            min_zoom = min_zoom if min_zoom is not None else region_min
            max_zoom = max_zoom if max_zoom is not None else region_max
        elif args.polygon_file:
            polygons = GeoJSONLoader.load_file(args.polygon_file)
        elif args.bbox:
            polygons = [TileSelector.bbox_polygon(*args.bbox)]
        else:
            raise ValidationError("Please provide --region, --bbox, --polygon-file or --world")

        min_zoom = 10 if min_zoom is None else min_zoom
        max_zoom = 12 if max_zoom is None else max_zoom
        return self.download_area(polygons, min_zoom, max_zoom, url, args.convert_to_8bit)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Download map tiles for an area (or the whole world) into the offline cache.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            'Examples:\n\n'
            '1) Custom BBOX (lon/lat order) from a registered source:\n'
            '   python src/tile_downloader.py --bbox 28.5 40.8 29.5 41.2 --min-zoom 10 --max-zoom 12 --style OpenStreetMap\n\n'
            '2) GeoJSON polygon with a custom URL template, converted to 8-bit PNG:\n'
            '   python src/tile_downloader.py --polygon-file area.geojson --url "https://{s}.tile.example.org/{z}/{x}/{y}.png" --convert-to-8bit\n\n'
            '3) Whole world, zoom 0-7:\n'
            '   python src/tile_downloader.py --world --style "CartoDB Positron"\n\n'
            'Cache layout: <maps-directory>/<style>/<z>/<x>/<y>.png'
        )
    )
    area = parser.add_mutually_exclusive_group()
    area.add_argument('--region', help='Region name from config.json -> regions')
    area.add_argument('--bbox', nargs=4, type=float, metavar=('min_lon', 'min_lat', 'max_lon', 'max_lat'),
                      help='Custom BBOX (lon/lat)')
    area.add_argument('--polygon-file', help='GeoJSON Polygon/MultiPolygon/Feature(Collection) file')
    area.add_argument('--world', action='store_true', help='Whole world at zoom 0-7')
    parser.add_argument('--style', help='Registered map source name (see --list-sources)')
    parser.add_argument('--url', help='Tile URL template with {s} {z} {x} {y}')
    parser.add_argument('--min-zoom', type=int, help='Minimum zoom level (default: 10)')
    parser.add_argument('--max-zoom', type=int, help='Maximum zoom level (default: 12)')
    parser.add_argument('--convert-to-8bit', action='store_true', help='Store tiles as 8-bit palette PNG')
    parser.add_argument('--list-regions', action='store_true', help='List configured regions')
    parser.add_argument('--list-sources', action='store_true', help='List registered map sources')
    parser.add_argument('--cached-tiles', metavar='STYLE', help='Show cached tile counts for a style')
    parser.add_argument('--config', default='config.json', help='Path to config.json (default: config.json)')
    parser.add_argument('--maps-directory', help='Directory for storing map tiles (default: maps)')
    parser.add_argument('--max-workers', type=int, help='Number of concurrent download workers (default: 10)')
    parser.add_argument('--rate-limit', type=int, help='Maximum number of tiles to download per second (default: 50)')
    parser.add_argument('--max-retries', type=int, help='Maximum number of attempts per tile (default: 3)')
    parser.add_argument('--log-level', help='Override logging level (DEBUG, INFO, ...)')
    return parser


def load_manager(args: argparse.Namespace) -> TileDownloadManager:
    """Config file plus command-line overrides, logging set up"""
    config_service = ConfigService()
    config = config_service.load_config(args.config)
    config = config_service.apply_overrides(config, vars(args))
    LoggingManager.setup_logging(config, args.log_level)
    return TileDownloadManager(config)
