"""
subdrop/api.py

REST API server for subdrop.

Exposes the engine's read-only query surface over HTTP for dashboards and
external integrations. Distributions and admin operations are only
available in-process.

Engine queries take the engine's thread lock, so handlers run them in a
worker thread (trio.to_thread) and the event loop keeps serving while a
distribution holds the lock in another thread.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from functools import partial
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

import trio

from .errors import InvalidInputError
from .metrics import MetricsCollector, VERSION

if TYPE_CHECKING:
    from .protocol.distribution import DistributionEngine

logger = logging.getLogger("subdrop.api")

# Largest leaderboard page served in one request
MAX_LEADERBOARD_LIMIT = 1000
DEFAULT_LEADERBOARD_LIMIT = 10

MAX_HEADER_BYTES = 16 * 1024
RECEIVE_SIZE = 4096


@dataclass
class Request:
    """Parsed HTTP request."""
    method: str
    path: str
    query: Dict[str, List[str]] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)

    def query_value(self, name: str) -> Optional[str]:
        values = self.query.get(name)
        return values[0] if values else None


@dataclass
class Response:
    """HTTP response to be encoded by encode_response()."""
    status: int
    headers: Dict[str, str]
    body: bytes

    @classmethod
    def json(cls, data: Any, status: int = 200) -> "Response":
        body = json.dumps(data, indent=2).encode("utf-8")
        return cls(status, {"Content-Type": "application/json"}, body)

    @classmethod
    def text(cls, text: str, status: int = 200, content_type: str = "text/plain") -> "Response":
        return cls(status, {"Content-Type": content_type}, text.encode("utf-8"))

    @classmethod
    def error(cls, message: str, status: int = 400) -> "Response":
        return cls.json({"error": message}, status=status)


Handler = Callable[[Request], Awaitable[Response]]


@dataclass(frozen=True)
class Route:
    """A method plus a path template such as /sent/{sender}/{recipient}."""
    method: str
    template: str
    handler: Handler

    @property
    def segments(self) -> Tuple[str, ...]:
        return tuple(self.template.strip("/").split("/"))

    def match(self, method: str, path: str) -> Optional[Dict[str, str]]:
        """Path parameters if the route matches, else None."""
        if method != self.method:
            return None
        parts = path.strip("/").split("/")
        if len(parts) != len(self.segments):
            return None

        params = {}
        for expected, actual in zip(self.segments, parts):
            if expected.startswith("{") and expected.endswith("}"):
                if not actual:
                    return None
                params[expected[1:-1]] = unquote(actual)
            elif expected != actual:
                return None
        return params


# ============================================================================
# WIRE FORMAT
# ============================================================================

def parse_head(head: bytes) -> Tuple[str, str, Dict[str, str]]:
    """Split a request head into (method, target, lower-cased headers)."""
    request_line, *header_lines = head.decode("latin-1").split("\r\n")
    method, _, rest = request_line.partition(" ")
    target = rest.split(" ", 1)[0] or "/"

    headers = {}
    for line in header_lines:
        name, sep, value = line.partition(":")
        if sep:
            headers[name.strip().lower()] = value.strip()
    return method.upper(), target, headers


async def read_request(stream: trio.abc.ReceiveStream) -> Optional[Request]:
    """Read one request from the stream (None if the peer sent nothing usable)."""
    buffer = bytearray()
    while b"\r\n\r\n" not in buffer:
        if len(buffer) > MAX_HEADER_BYTES:
            return None
        chunk = await stream.receive_some(RECEIVE_SIZE)
        if not chunk:
            return None
        buffer += chunk

    head, _, body = bytes(buffer).partition(b"\r\n\r\n")
    method, target, headers = parse_head(head)

    length = int(headers.get("content-length") or 0)
    while len(body) < length:
        chunk = await stream.receive_some(RECEIVE_SIZE)
        if not chunk:
            break
        body += chunk

    url = urlsplit(target)
    return Request(
        method=method,
        path=url.path or "/",
        query=parse_qs(url.query),
        headers=headers,
        body=body[:length],
    )


def encode_response(response: Response) -> bytes:
    """Serialize a response with Content-Length and Connection: close."""
    try:
        reason = HTTPStatus(response.status).phrase
    except ValueError:
        reason = "Unknown"

    headers = dict(response.headers)
    headers.update({
        "Content-Length": str(len(response.body)),
        "Connection": "close",
        "Server": f"subdrop/{VERSION}",
    })
    head = [f"HTTP/1.1 {response.status} {reason}"]
    head += [f"{name}: {value}" for name, value in headers.items()]
    return ("\r\n".join(head) + "\r\n\r\n").encode("latin-1") + response.body


# ============================================================================
# SERVER
# ============================================================================

class SubdropAPI:
    """
    REST API server for subdrop.

    Usage:
        from subdrop.api import SubdropAPI

        api = SubdropAPI(engine, host="0.0.0.0", port=8545)
        await api.start()

        # API available at http://localhost:8545
    """

    def __init__(
        self,
        engine: "DistributionEngine",
        host: str = "127.0.0.1",
        port: int = 8545,
        enable_metrics: bool = True,
    ):
        """
        Initialize REST API server.

        Args:
            engine: DistributionEngine to expose via API
            host: Host to bind to (default: localhost)
            port: Port to listen on
            enable_metrics: Enable Prometheus metrics endpoint
        """
        self.engine = engine
        self.host = host
        self.port = port
        self.enable_metrics = enable_metrics

        self.metrics = MetricsCollector(engine) if enable_metrics else None

        self._running = False
        self._start_time = time.time()

        self.routes: List[Route] = [
            Route("GET", "/", self._handle_root),
            Route("GET", "/health", self._handle_health),
            Route("GET", "/config", self._handle_config),
            Route("GET", "/leaderboard", self._handle_leaderboard),
            Route("GET", "/scores/{address}", self._handle_score),
            Route("GET", "/sent/{sender}/{recipient}", self._handle_sent),
            Route("GET", "/eligible/{address}", self._handle_eligible),
            Route("POST", "/preview", self._handle_preview),
            Route("GET", "/metrics", self._handle_metrics),
        ]

    async def start(self) -> None:
        """Start the API server (runs until cancelled)."""
        if self._running:
            logger.warning("API server already running")
            return

        self._running = True
        logger.info(f"Starting REST API server on {self.host}:{self.port}")

        try:
            await trio.serve_tcp(self._handle_connection, self.port, host=self.host)
        finally:
            self._running = False
            logger.info("REST API server stopped")

    async def _query(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking engine query off the event loop."""
        return await trio.to_thread.run_sync(partial(fn, *args))

    async def _handle_connection(self, stream: trio.SocketStream) -> None:
        async with stream:
            try:
                request = await read_request(stream)
                if request is None:
                    return
                response = await self.dispatch(request)
            except (trio.BrokenResourceError, trio.ClosedResourceError) as e:
                logger.debug(f"Connection closed early: {e}")
                return
            except Exception as e:
                logger.error(f"Request failed: {e}")
                response = Response.error(str(e), status=500)

            try:
                await stream.send_all(encode_response(response))
            except (trio.BrokenResourceError, trio.ClosedResourceError):
                logger.debug("Client went away before the response was sent")

    async def dispatch(self, request: Request) -> Response:
        """Find the route for a request and run its handler."""
        for route in self.routes:
            params = route.match(request.method, request.path)
            if params is not None:
                request.path_params = params
                return await route.handler(request)
        return Response.error("Not Found", status=404)

    # ========== Route Handlers ==========

    async def _handle_root(self, request: Request) -> Response:
        return Response.json({
            "name": "subdrop",
            "version": VERSION,
            "endpoints": [f"{route.method} {route.template}" for route in self.routes],
        })

    async def _handle_health(self, request: Request) -> Response:
        return Response.json({
            "status": "healthy",
            "engine": self.engine.address,
            "uptime_seconds": time.time() - self._start_time,
        })

    async def _handle_config(self, request: Request) -> Response:
        engine = self.engine
        return Response.json({
            "engine": engine.address,
            "owner": engine.owner,
            "token_amount": engine.token_amount,
            "batch_size": engine.batch_size,
        })

    async def _handle_leaderboard(self, request: Request) -> Response:
        """Handle ranking endpoint (?limit=N)."""
        raw_limit = request.query_value("limit")
        try:
            limit = int(raw_limit) if raw_limit is not None else DEFAULT_LEADERBOARD_LIMIT
        except ValueError:
            return Response.error("limit must be an integer", status=400)
        limit = min(limit, MAX_LEADERBOARD_LIMIT)

        rows = await self._query(self.engine.top_droppers, limit)
        total = await self._query(self.engine.total_leaderboard_size)
        return Response.json({
            "total": total,
            "count": len(rows),
            "droppers": [row.to_dict() for row in rows],
        })

    async def _handle_score(self, request: Request) -> Response:
        address = request.path_params["address"]
        score = await self._query(self.engine.score_of, address)
        return Response.json({"address": address, "score": score})

    async def _handle_sent(self, request: Request) -> Response:
        sender = request.path_params["sender"]
        recipient = request.path_params["recipient"]
        sent = await self._query(self.engine.has_sent, sender, recipient)
        return Response.json({"sender": sender, "recipient": recipient, "sent": sent})

    async def _handle_eligible(self, request: Request) -> Response:
        address = request.path_params["address"]
        eligible = await self._query(self.engine.is_eligible_recipient, address)
        return Response.json({"address": address, "eligible": eligible})

    async def _handle_preview(self, request: Request) -> Response:
        """Handle preview endpoint ({"sender": ..., "recipients": [...]})."""
        if not request.body:
            return Response.error("Request body required", status=400)
        try:
            body = json.loads(request.body)
        except ValueError:
            return Response.error("Invalid JSON", status=400)
        if not isinstance(body, dict):
            return Response.error("Body must be a JSON object", status=400)

        sender = body.get("sender")
        recipients = body.get("recipients")
        if not sender:
            return Response.error("sender is required", status=400)
        if not isinstance(recipients, list):
            return Response.error("recipients must be a list", status=400)

        try:
            preview = await self._query(self.engine.preview_distribution, sender, recipients)
        except InvalidInputError as e:
            return Response.error(str(e), status=400)
        return Response.json(preview.to_dict())

    async def _handle_metrics(self, request: Request) -> Response:
        """Handle Prometheus metrics endpoint."""
        if not self.metrics:
            return Response.error("Metrics not enabled", status=404)

        output = await self._query(self.metrics.collect)
        return Response.text(output, content_type="text/plain; version=0.0.4; charset=utf-8")
