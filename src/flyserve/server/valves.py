# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Engine valves: pure-ASGI middleware installed around the application.

A valve is a settings object; :meth:`wrap` turns it into middleware when the
server is built. Valves of the same type replace each other on a factory, so
customizing twice never stacks two access logs or two proxy rewrites.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.responses import PlainTextResponse, RedirectResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from flyserve.server.access_log import create_access_logger, flush_access_logger

NAMED_PATTERNS = {
    "common": '%h %l %u %t "%r" %s %b',
    "combined": '%h %l %u %t "%r" %s %b "%{Referer}i" "%{User-Agent}i"',
}

_TOKEN_RE = re.compile(r"%\{([^}]+)\}([io])|%([a-zA-Z%])")


@runtime_checkable
class Valve(Protocol):
    def wrap(self, app: ASGIApp) -> ASGIApp: ...


# =============================================================================
# Access log
# =============================================================================


class AccessLogPattern:
    """Compiled access log pattern (``%h %l %u %t "%r" %s %b`` style)."""

    def __init__(self, pattern: str) -> None:
        self.pattern = NAMED_PATTERNS.get(pattern, pattern)
        self._parts: list[tuple[str, str]] = []
        position = 0
        for match in _TOKEN_RE.finditer(self.pattern):
            if match.start() > position:
                self._parts.append(("literal", self.pattern[position : match.start()]))
            if match.group(1) is not None:
                self._parts.append((f"header_{match.group(2)}", match.group(1).lower()))
            else:
                self._parts.append(("code", match.group(3)))
            position = match.end()
        if position < len(self.pattern):
            self._parts.append(("literal", self.pattern[position:]))

    def format(self, entry: dict[str, Any]) -> str:
        out: list[str] = []
        for kind, value in self._parts:
            if kind == "literal":
                out.append(value)
            elif kind == "header_i":
                out.append(entry["request_headers"].get(value) or "-")
            elif kind == "header_o":
                out.append(entry["response_headers"].get(value) or "-")
            else:
                out.append(self._render(value, entry))
        return "".join(out)

    @staticmethod
    def _render(code: str, entry: dict[str, Any]) -> str:
        query = entry["query"]
        if code in ("a", "h"):
            return entry["remote"]
        if code in ("l", "u"):
            return "-"
        if code == "t":
            return entry["time"].strftime("[%d/%b/%Y:%H:%M:%S %z]")
        if code == "r":
            target = entry["path"] + (f"?{query}" if query else "")
            return f"{entry['method']} {target} {entry['protocol']}"
        if code == "s":
            return str(entry["status"])
        if code == "b":
            return str(entry["bytes"]) if entry["bytes"] else "-"
        if code == "B":
            return str(entry["bytes"])
        if code == "D":
            return str(int(entry["duration"] * 1000))
        if code == "T":
            return f"{entry['duration']:.3f}"
        if code == "m":
            return entry["method"]
        if code == "U":
            return entry["path"]
        if code == "q":
            return f"?{query}" if query else ""
        if code == "H":
            return entry["protocol"]
        if code == "v":
            return entry["server_name"]
        if code == "p":
            return str(entry["server_port"])
        if code == "%":
            return "%"
        return f"%{code}"


class AccessLogMiddleware:
    """Writes one formatted line per HTTP request to *logger*."""

    def __init__(self, app: ASGIApp, logger: logging.Logger, pattern: AccessLogPattern) -> None:
        self.app = app
        self._logger = logger
        self._pattern = pattern

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.monotonic()
        state: dict[str, Any] = {"status": 500, "bytes": 0, "headers": Headers()}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                state["status"] = message["status"]
                state["headers"] = Headers(raw=message.get("headers", []))
            elif message["type"] == "http.response.body":
                state["bytes"] += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            self._logger.info(self._pattern.format(self._entry(scope, state, time.monotonic() - started)))

    @staticmethod
    def _entry(scope: Scope, state: dict[str, Any], duration: float) -> dict[str, Any]:
        client = scope.get("client") or ("-", 0)
        server = scope.get("server") or ("-", 0)
        return {
            "remote": client[0],
            "time": datetime.now(timezone.utc),
            "method": scope.get("method", "-"),
            "path": scope.get("path", ""),
            "query": scope.get("query_string", b"").decode("latin-1"),
            "protocol": f"HTTP/{scope.get('http_version', '1.1')}",
            "status": state["status"],
            "bytes": state["bytes"],
            "duration": duration,
            "server_name": server[0],
            "server_port": server[1],
            "request_headers": Headers(scope=scope),
            "response_headers": state["headers"],
        }


@dataclass
class AccessLogValve:
    """Access log valve settings."""

    pattern: str = "common"
    directory: Path = Path("logs")
    prefix: str = "access_log"
    suffix: str = ".log"
    rotate: bool = True
    buffered: bool = True
    file_date_format: str = ".%Y-%m-%d"
    enabled: bool = True
    logger_name: str = "flyserve.access"
    _logger: logging.Logger | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def path(self) -> Path:
        return self.directory / f"{self.prefix}{self.suffix}"

    def wrap(self, app: ASGIApp) -> ASGIApp:
        self._logger = create_access_logger(
            self.logger_name,
            self.path,
            rotate=self.rotate,
            buffered=self.buffered,
            file_date_format=self.file_date_format,
        )
        return AccessLogMiddleware(app, self._logger, AccessLogPattern(self.pattern))

    def background_process(self) -> None:
        """Flush buffered lines; run periodically by the server's housekeeping task."""
        if self._logger is not None:
            flush_access_logger(self._logger)


# =============================================================================
# Remote IP / forwarded headers
# =============================================================================


class RemoteIpMiddleware:
    """Rewrites client address, scheme and port from proxy headers.

    Headers are honoured only when the direct peer matches the internal
    proxies pattern. The forwarded-for list is walked right to left and the
    first address that is not an internal proxy becomes the client.
    """

    def __init__(self, app: ASGIApp, valve: RemoteIpValve) -> None:
        self.app = app
        self._valve = valve
        self._internal = re.compile(valve.internal_proxies) if valve.internal_proxies is not None else None

    def is_internal_proxy(self, address: str) -> bool:
        return self._internal is None or self._internal.fullmatch(address) is not None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        client = scope.get("client")
        if scope["type"] not in ("http", "websocket") or not client or not self.is_internal_proxy(client[0]):
            await self.app(scope, receive, send)
            return

        valve = self._valve
        headers = Headers(scope=scope)
        scope = dict(scope)

        if valve.remote_ip_header:
            forwarded = [
                address.strip()
                for value in headers.getlist(valve.remote_ip_header)
                for address in value.split(",")
                if address.strip()
            ]
            if forwarded:
                remote = forwarded[0]
                for address in reversed(forwarded):
                    if not self.is_internal_proxy(address):
                        remote = address
                        break
                scope["client"] = (remote, client[1])

        if valve.protocol_header:
            protocol = headers.get(valve.protocol_header)
            if protocol:
                secure = protocol.split(",")[0].strip().lower() == valve.protocol_header_https_value.lower()
                websocket = scope["type"] == "websocket"
                scope["scheme"] = ("wss" if websocket else "https") if secure else ("ws" if websocket else "http")
                self._set_server_port(scope, 443 if secure else 80)

        if valve.port_header:
            port = headers.get(valve.port_header)
            if port and port.strip().isdigit():
                self._set_server_port(scope, int(port.strip()))

        await self.app(scope, receive, send)

    @staticmethod
    def _set_server_port(scope: dict[str, Any], port: int) -> None:
        server = scope.get("server")
        if server:
            scope["server"] = (server[0], port)


@dataclass
class RemoteIpValve:
    """Forwarded-header trust settings.

    ``internal_proxies`` is a regular expression matched against the whole
    peer address; ``None`` trusts every peer.
    """

    remote_ip_header: str | None = "X-Forwarded-For"
    protocol_header: str | None = "X-Forwarded-Proto"
    protocol_header_https_value: str = "https"
    port_header: str | None = None
    internal_proxies: str | None = None

    def wrap(self, app: ASGIApp) -> ASGIApp:
        return RemoteIpMiddleware(app, self)


# =============================================================================
# Connector and context middleware
# =============================================================================


class RequestBodyTooLarge(HTTPException):
    """Raised from the wrapped ``receive`` once a streamed body passes the limit.

    Being an ``HTTPException``, it is turned into a 413 by Starlette's
    exception middleware when the application is a Starlette app.
    """

    def __init__(self) -> None:
        super().__init__(status_code=413, detail="Request body too large")


class RequestBodyLimitMiddleware:
    """Rejects requests whose body exceeds *max_size* bytes with 413.

    A declared ``content-length`` is checked up front. Bodies without one
    (chunked or streamed uploads) are counted as the application receives
    them, and the request is answered with 413 as soon as the total passes
    the limit, unless the application has already started its response.
    """

    def __init__(self, app: ASGIApp, max_size: int) -> None:
        self.app = app
        self._max_size = max_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > self._max_size:
            await self._reject(scope, receive, send)
            return

        received = 0
        response_started = False

        async def receive_wrapper() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self._max_size:
                    raise RequestBodyTooLarge()
            return message

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        except RequestBodyTooLarge:
            if response_started:
                raise
            await self._reject(scope, receive, send)

    @staticmethod
    async def _reject(scope: Scope, receive: Receive, send: Send) -> None:
        response = PlainTextResponse("Request body too large", status_code=413)
        await response(scope, receive, send)


class ContextRootRedirectMiddleware:
    """Redirects a request for the bare context path to the path with a trailing slash."""

    def __init__(self, app: ASGIApp, context_path: str) -> None:
        self.app = app
        self._context_path = context_path.rstrip("/")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self._context_path and scope.get("path") == self._context_path:
            query = scope.get("query_string", b"").decode("latin-1")
            location = f"{self._context_path}/" + (f"?{query}" if query else "")
            await RedirectResponse(location, status_code=302)(scope, receive, send)
            return
        await self.app(scope, receive, send)
