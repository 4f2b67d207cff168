import http.server
import json
import logging
import os
import socket
import urllib.parse
from typing import Any, Optional

from core.download_session import DownloadSessionManager
from models.download_request import AreaDownloadRequest, WorldDownloadRequest
from models.events import ErrorEvent
from models.tile import Tile
from services.event_channel import EventBroadcaster
from services.map_source_service import MapSourceRegistry
from services.tile_cache_service import TileCacheService
from exceptions.tile_downloader_exceptions import ServerError, ValidationError

logger = logging.getLogger(__name__)

SSE_KEEPALIVE_SECONDS = 15.0


class HTTPServerService:
    """HTTP front end: cached tiles, map sources, download control and SSE events"""

    def __init__(self, session_manager: DownloadSessionManager, registry: MapSourceRegistry,
                 cache: TileCacheService, port: int = 8080, host: str = ""):
        self.session_manager = session_manager
        self.registry = registry
        self.cache = cache
        self.port = port
        self.host = host
        self.events = EventBroadcaster()
        self.httpd: Optional[http.server.ThreadingHTTPServer] = None

    def create_request_handler(self):
        """Create HTTP request handler bound to this service"""
        server_service = self  # Reference to service instance

        class TileRequestHandler(http.server.BaseHTTPRequestHandler):
            protocol_version = 'HTTP/1.1'

            def log_error(self, format, *args):
                # Ignore common connection errors to reduce log noise
                ignore_errors = ["Connection aborted", "ConnectionResetError", "Broken pipe"]
                if any(err in str(args) for err in ignore_errors):
                    return
                logger.warning("%s - %s", self.address_string(), format % args)

            def log_message(self, format, *args):
                logger.debug("%s - %s", self.address_string(), format % args)

            def handle_one_request(self):
                try:
                    super().handle_one_request()
                except (ConnectionResetError, BrokenPipeError, ConnectionAbortedError, socket.timeout):
                    self.close_connection = True

            def end_headers(self):
                self.send_header('Access-Control-Allow-Origin', '*')
                self.send_header('Access-Control-Allow-Methods', 'GET, POST, OPTIONS')
                self.send_header('Access-Control-Allow-Headers', 'Content-Type, Accept')
                super().end_headers()

            def do_OPTIONS(self):
                self.send_response(204)
                self.send_header('Content-Length', '0')
                self.end_headers()

            def do_GET(self):
                path = urllib.parse.unquote(self.path.split('?')[0].split('#')[0])
                if path == '/get_map_sources':
                    self._send_json_response(server_service.registry.get_sources())
                elif path.startswith('/get_cached_tiles/'):
                    self._handle_cached_tiles(path[len('/get_cached_tiles/'):])
                elif path.startswith('/tiles/'):
                    self._handle_tile(path[len('/tiles/'):])
                elif path == '/events':
                    self._handle_events()
                else:
                    self._send_json_response({'error': 'Not found'}, status=404)

            def do_POST(self):
                path = self.path.split('?')[0]
                if path == '/start_download':
                    self._handle_start(AreaDownloadRequest, "Invalid download request")
                elif path == '/start_world_download':
                    self._handle_start(WorldDownloadRequest, "Invalid world download request")
                elif path == '/cancel_download':
                    self._read_body()
                    cancelled = server_service.session_manager.cancel()
                    self._send_json_response({'accepted': cancelled}, status=202)
                else:
                    self._send_json_response({'error': 'Not found'}, status=404)

            def _read_body(self) -> bytes:
                length = int(self.headers.get('Content-Length') or 0)
                return self.rfile.read(length) if length > 0 else b''

            def _handle_start(self, request_cls, invalid_message: str):
                """Parse a download request and hand it to the session manager"""
                try:
                    data = json.loads(self._read_body() or b'{}')
                    if not isinstance(data, dict):
                        raise ValidationError(invalid_message)
                    request = request_cls.from_dict(data)
                except (ValueError, ValidationError) as e:
                    logger.warning("%s: %s", invalid_message, e)
                    server_service.events.notify(ErrorEvent(message=invalid_message))
                    self._send_json_response({'accepted': False}, status=202)
                    return

                session = server_service.session_manager.start(request, server_service.events)
                self._send_json_response({'accepted': session is not None}, status=202)

            def _handle_tile(self, rel_path: str):
                """Serve <style>/<z>/<x>/<y>.png from the cache"""
                parts = rel_path.split('/')
                if len(parts) != 4:
                    self._send_json_response({'error': 'Not found'}, status=404)
                    return
                style_name, z_str, x_str, y_file = parts
                y_str = y_file[:-4] if y_file.endswith('.png') else y_file
                if not (z_str.isdigit() and x_str.isdigit() and y_str.isdigit()):
                    self._send_json_response({'error': 'Not found'}, status=404)
                    return

                tile = Tile(int(x_str), int(y_str), int(z_str))
                if not tile.is_valid():
                    self._send_json_response({'error': 'Not found'}, status=404)
                    return
                file_path = server_service.cache.tile_path(style_name, tile)
                if not self._is_safe_path(file_path):
                    self.send_error(403, 'Access denied')
                    return
                if not os.path.isfile(file_path):
                    self._send_json_response({'error': 'Tile not cached'}, status=404)
                    return
                self._serve_file(file_path)

            def _handle_cached_tiles(self, style_name: str):
                tiles = server_service.cache.enumerate(style_name)
                self._send_json_response([[t.z, t.x, t.y] for t in tiles])

            def _handle_events(self):
                """Server-Sent Events stream of download events"""
                channel = server_service.events.subscribe()
                try:
                    self.send_response(200)
                    self.send_header('Content-Type', 'text/event-stream')
                    self.send_header('Cache-Control', 'no-cache')
                    self.send_header('Connection', 'close')
                    self.end_headers()
                    self.wfile.write(b': connected\n\n')
                    self.wfile.flush()
                    for event in channel.listen(timeout=SSE_KEEPALIVE_SECONDS):
                        if event is None:
                            self.wfile.write(b': keepalive\n\n')
                        else:
                            payload = json.dumps(event.to_message())
                            self.wfile.write(f"data: {payload}\n\n".encode('utf-8'))
                        self.wfile.flush()
                except (ConnectionResetError, BrokenPipeError, ConnectionAbortedError):
                    logger.debug("Event listener disconnected")
                finally:
                    server_service.events.unsubscribe(channel)
                    self.close_connection = True

            def _is_safe_path(self, file_path: str) -> bool:
                """Check if path is safe (prevent directory traversal)"""
                canonical_path = os.path.realpath(file_path)
                base_path = os.path.realpath(server_service.cache.cache_root)
                return canonical_path.startswith(base_path + os.sep)

            def _serve_file(self, file_path: str):
                """Serve a tile file with caching headers"""
                with open(file_path, 'rb') as f:
                    content = f.read()
                self.send_response(200)
                self.send_header('Content-Type', 'image/png')
                self.send_header('Content-Length', str(len(content)))
                self.send_header('Cache-Control', 'public, max-age=3600')
                self.end_headers()
                self.wfile.write(content)

            def _send_json_response(self, data: Any, status: int = 200):
                """Send JSON response with proper headers"""
                response_bytes = json.dumps(data).encode('utf-8')

                self.send_response(status)
                self.send_header('Content-Type', 'application/json')
                self.send_header('Content-Length', str(len(response_bytes)))
                self.send_header('Cache-Control', 'no-cache')
                self.end_headers()
                self.wfile.write(response_bytes)

        return TileRequestHandler

    def bind(self) -> http.server.ThreadingHTTPServer:
        """Create the listening server (port 0 picks a free port)"""
        handler = self.create_request_handler()
        try:
            self.httpd = http.server.ThreadingHTTPServer((self.host, self.port), handler)
        except OSError as e:
            raise ServerError(f"Cannot listen on port {self.port}: {e}")
        self.httpd.daemon_threads = True
        self.port = self.httpd.server_address[1]
        return self.httpd

    def start(self):
        """Bind and serve until interrupted"""
        if self.httpd is None:
            self.bind()
        logger.info("Server started at http://localhost:%d", self.port)
        logger.info("Serving tiles from: %s", os.path.abspath(self.cache.cache_root))
        try:
            self.httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Server stopped by user")
        finally:
            self.session_manager.cancel()
            self.httpd.server_close()

    def stop(self):
        """Stop the HTTP server"""
        self.events.close_all()
        if self.httpd is not None:
            self.httpd.shutdown()
            self.httpd.server_close()
            self.httpd = None
