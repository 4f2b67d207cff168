import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import json
import threading
from pathlib import Path

import pytest
import requests

from core.download_session import DownloadSessionManager
from interfaces.tile_server import ITileFetcher
from models.events import DownloadComplete, DownloadStarted, ErrorEvent, TERMINAL_EVENT_TYPES
from models.tile import Tile
from models.tile_server import DownloadSettings
from services.http_server_service import HTTPServerService
from services.map_source_service import MapSourceRegistry
from services.tile_cache_service import TileCacheService

URL = "https://{s}.tile.example.org/{z}/{x}/{y}.png"


class FakeFetcher(ITileFetcher):
    def fetch(self, server, tile, cancel_event):
        return f"tile {tile.key()}".encode()


@pytest.fixture
def server(tmp_path: Path):
    settings = DownloadSettings(maps_directory=str(tmp_path), max_workers=2, rate_limit=1000,
                                max_retries=1, retry_backoff=0.0)
    registry = MapSourceRegistry({"Example Tiles": URL})
    cache = TileCacheService(str(tmp_path))
    manager = DownloadSessionManager(settings, registry, fetcher=FakeFetcher(), cache=cache)
    service = HTTPServerService(manager, registry, cache, port=0, host="127.0.0.1")
    service.bind()
    thread = threading.Thread(target=service.httpd.serve_forever, daemon=True)
    thread.start()
    yield service
    service.stop()
    thread.join(5)


def base_url(service: HTTPServerService) -> str:
    return f"http://127.0.0.1:{service.port}"


def drain(channel, timeout=10.0):
    """Collect events until a terminal one arrives"""
    events = []
    while True:
        event = channel.get(timeout=timeout)
        assert event is not None, f"no terminal event, got {events}"
        events.append(event)
        if event.type in TERMINAL_EVENT_TYPES:
            return events


class TestReadRoutes:

    def test_map_sources(self, server):
        response = requests.get(base_url(server) + "/get_map_sources", timeout=5)
        assert response.status_code == 200
        assert response.headers['Access-Control-Allow-Origin'] == '*'
        assert response.json() == {"Example Tiles": URL}

    def test_cached_tile(self, server):
        server.cache.write("Example Tiles", Tile(1, 2, 3), b"png-bytes")

        response = requests.get(base_url(server) + "/tiles/Example-Tiles/3/1/2.png", timeout=5)
        assert response.status_code == 200
        assert response.headers['Content-Type'] == 'image/png'
        assert response.content == b"png-bytes"

        missing = requests.get(base_url(server) + "/tiles/Example-Tiles/3/1/3.png", timeout=5)
        assert missing.status_code == 404

    def test_non_numeric_tile_path(self, server):
        response = requests.get(base_url(server) + "/tiles/Example-Tiles/3/a/2.png", timeout=5)
        assert response.status_code == 404

    def test_tile_outside_grid(self, server, tmp_path: Path):
        stray = tmp_path / "Example-Tiles" / "1" / "5"
        stray.mkdir(parents=True)
        (stray / "0.png").write_bytes(b"png-bytes")

        response = requests.get(base_url(server) + "/tiles/Example-Tiles/1/5/0.png", timeout=5)
        assert response.status_code == 404

    def test_cached_tiles_listing(self, server):
        server.cache.write("Example Tiles", Tile(0, 0, 0), b"a")
        server.cache.write("Example Tiles", Tile(1, 0, 1), b"b")

        response = requests.get(base_url(server) + "/get_cached_tiles/Example Tiles", timeout=5)
        assert response.json() == [[0, 0, 0], [1, 1, 0]]

    def test_unknown_route(self, server):
        assert requests.get(base_url(server) + "/nowhere", timeout=5).status_code == 404


class TestDownloadRoutes:

    def test_invalid_body_reports_error(self, server):
        channel = server.events.subscribe()
        response = requests.post(base_url(server) + "/start_download", data=b"not json", timeout=5)

        assert response.status_code == 202
        assert response.json() == {"accepted": False}
        assert channel.get(timeout=5) == ErrorEvent(message="Invalid download request")

    def test_invalid_zoom_reports_error(self, server):
        channel = server.events.subscribe()
        body = {"polygons": [], "min_zoom": 5, "max_zoom": 2, "map_style": URL}
        response = requests.post(base_url(server) + "/start_download", json=body, timeout=5)

        assert response.json() == {"accepted": False}
        assert channel.get(timeout=5) == ErrorEvent(message="Invalid zoom range (must be 0-19, min <= max)")

    def test_area_download_completes(self, server, tmp_path: Path):
        channel = server.events.subscribe()
        body = {
            "polygons": [[{"lat": 40.8, "lng": 28.5}, {"lat": 41.2, "lng": 28.5},
                          {"lat": 41.2, "lng": 29.5}, {"lat": 40.8, "lng": 29.5}]],
            "min_zoom": 0,
            "max_zoom": 2,
            "map_style": URL,
        }
        response = requests.post(base_url(server) + "/start_download", json=body, timeout=5)
        assert response.json() == {"accepted": True}

        events = drain(channel)
        assert events[0] == DownloadStarted(total_tiles=3)
        assert isinstance(events[-1], DownloadComplete)
        assert (tmp_path / "Example-Tiles" / "2" / "2" / "1.png").read_bytes() == b"tile 2/2/1"

    def test_cancel_without_session(self, server):
        response = requests.post(base_url(server) + "/cancel_download", timeout=5)
        assert response.status_code == 202
        assert response.json() == {"accepted": False}


class TestEventStream:

    def test_events_are_streamed(self, server):
        with requests.get(base_url(server) + "/events", stream=True, timeout=5) as response:
            assert response.headers['Content-Type'] == 'text/event-stream'
            lines = response.iter_lines(chunk_size=1, decode_unicode=True)
            assert next(lines) == ': connected'

            server.events.notify(ErrorEvent(message="boom"))
            data_lines = (line for line in lines if line.startswith('data: '))
            message = json.loads(next(data_lines)[len('data: '):])

        assert message == {"type": "error", "data": {"message": "boom"}}
