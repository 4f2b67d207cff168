import json
import os
from typing import Any, Dict, List, Optional, Tuple

from interfaces.tile_server import IConfigLoader
from models.tile import GeoPoint
from models.tile_server import DownloadSettings
from services.tile_selector import TileSelector
from utils.geojson_loader import GeoJSONLoader
from exceptions.tile_downloader_exceptions import ConfigurationError, ValidationError

DEFAULT_CONFIG: Dict[str, Any] = {
    'port': 8080,
    'maps_directory': 'maps',
    'max_workers': 10,
    'rate_limit': 50,
    'max_retries': 3,
    'retry_backoff': 1.0,
    'timeout': 30,
    'map_sources_path': None,
    'regions': {},
    'logging': {},
}

# config keys that command-line flags may override
OVERRIDABLE_KEYS = ('port', 'maps_directory', 'max_workers', 'rate_limit', 'max_retries')


class ConfigService(IConfigLoader):
    """Service for loading and validating configuration"""

    def load_config(self, config_path: str, required: bool = False) -> Dict[str, Any]:
        """Load configuration from JSON file, filling defaults"""
        config = dict(DEFAULT_CONFIG)
        if not os.path.exists(config_path):
            if required:
                raise ConfigurationError(f"Config file {config_path} not found!")
            return config

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading config: {e}")

        if not isinstance(loaded, dict):
            raise ConfigurationError("Invalid configuration format")
        config.update(loaded)
        self.validate_config(config)
        return config

    def apply_overrides(self, config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Overlay non-None command-line values"""
        merged = dict(config)
        for key in OVERRIDABLE_KEYS:
            value = overrides.get(key)
            if value is not None:
                merged[key] = value
        self.validate_config(merged)
        return merged

    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration values"""
        for key in ('max_workers', 'rate_limit', 'max_retries', 'timeout', 'port'):
            if not isinstance(config.get(key), int) or isinstance(config.get(key), bool):
                raise ValidationError(f"{key} must be an integer")
            if config[key] < 1:
                raise ValidationError(f"{key} must be >= 1")

        if config['port'] > 65535:
            raise ValidationError("port must be <= 65535")

        if not isinstance(config.get('retry_backoff'), (int, float)) or config['retry_backoff'] < 0:
            raise ValidationError("retry_backoff must be a non-negative number")

        if not isinstance(config.get('maps_directory'), str) or not config['maps_directory']:
            raise ValidationError("maps_directory must be a non-empty string")

        if not isinstance(config.get('regions'), dict):
            raise ValidationError("regions must be a dictionary")

        return True

    def get_settings(self, config: Dict[str, Any]) -> DownloadSettings:
        """Resolve the download settings"""
        return DownloadSettings(
            maps_directory=config['maps_directory'],
            max_workers=config['max_workers'],
            rate_limit=config['rate_limit'],
            max_retries=config['max_retries'],
            retry_backoff=float(config['retry_backoff']),
            timeout=config['timeout'],
            port=config['port'],
        )

    def get_region(self, config: Dict[str, Any],
                   region_name: str) -> Tuple[List[List[GeoPoint]], Optional[int], Optional[int]]:
        """Polygons and optional zoom range of a configured region"""
        regions = config.get('regions', {})
        if region_name not in regions:
            raise ConfigurationError(f"Region '{region_name}' not found")

        region_data = regions[region_name]
        polygon_path = region_data.get('polygon_path')
        if polygon_path:
            polygons = GeoJSONLoader.load_file(polygon_path)
        elif 'bbox' in region_data:
            polygons = [TileSelector.bbox_polygon(*region_data['bbox'])]
        else:
            raise ConfigurationError(f"Region '{region_name}' needs 'bbox' or 'polygon_path'")

        return polygons, region_data.get('min_zoom'), region_data.get('max_zoom')
