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
"""Hypercorn embedded server: HTTP/2 and HTTP/3 support."""

from __future__ import annotations

import asyncio
import os
from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Any

import structlog
from hypercorn.config import Config as HypercornConfig

from flyserve.server.access_log import create_access_logger
from flyserve.server.context import ServerContext
from flyserve.server.types import ServerInfo

if TYPE_CHECKING:
    from flyserve.server.adapters.hypercorn.factory import HypercornServerFactory

logger = structlog.get_logger("flyserve.server.hypercorn")

NAMED_PATTERNS = {
    "common": '%(h)s %(l)s %(l)s %(t)s "%(r)s" %(s)s %(b)s',
    "combined": '%(h)s %(l)s %(l)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"',
}


class HypercornEmbeddedServer:
    """EmbeddedServer backed by Hypercorn."""

    def __init__(self, app: Any, factory: HypercornServerFactory, context: ServerContext) -> None:
        self._app = app
        self._context = context
        self._shutdown_event: asyncio.Event | None = None
        self.workers = factory.workers if factory.workers and factory.workers > 0 else (os.cpu_count() or 1)
        self.host = factory.bind_host
        self.port = factory.port

        self.config = HypercornConfig()
        self.config.bind = [f"{self.host}:{self.port}"]
        self.config.workers = self.workers
        self.config.loglevel = "WARNING"
        if context.context_path:
            self.config.root_path = context.context_path
        if factory.connection_timeout is not None:
            self.config.keep_alive_timeout = factory.connection_timeout

        access_log = factory.access_log
        if access_log is not None and access_log.enabled:
            self.config.accesslog = create_access_logger(
                "flyserve.access.hypercorn",
                access_log.path,
                rotate=access_log.rotate,
            )
            self.config.access_log_format = NAMED_PATTERNS.get(access_log.pattern, access_log.pattern)

    @property
    def context(self) -> ServerContext:
        return self._context

    @property
    def app(self) -> Any:
        return self._app

    def serve(self) -> None:
        """Start Hypercorn (blocking)."""
        asyncio.run(self.serve_async())

    async def serve_async(self) -> None:
        """Start Hypercorn (async)."""
        from hypercorn.asyncio import serve

        self._shutdown_event = asyncio.Event()
        logger.info("server_starting", server="hypercorn", host=self.host, port=self.port)
        await serve(self._app, self.config, shutdown_trigger=self._shutdown_event.wait)

    def shutdown(self) -> None:
        """Request graceful shutdown."""
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    @property
    def server_info(self) -> ServerInfo:
        return ServerInfo(
            name="hypercorn",
            version=self._get_version(),
            workers=self.workers,
            event_loop="asyncio",
            http_protocol="h2" if self.config.ssl_enabled else "h1",
            host=self.host,
            port=self.port,
        )

    @staticmethod
    def _get_version() -> str:
        try:
            return version("hypercorn")
        except PackageNotFoundError:
            return "unknown"
