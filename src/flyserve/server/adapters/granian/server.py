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
"""Granian embedded server: Rust/tokio-based, highest performance."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Any

import structlog

from flyserve.server.access_log import NativeAccessLog
from flyserve.server.context import ServerContext
from flyserve.server.types import ServerInfo

if TYPE_CHECKING:
    from flyserve.server.adapters.granian.factory import GranianServerFactory

logger = structlog.get_logger("flyserve.server.granian")

NAMED_PATTERNS = {
    "common": '%(addr)s - - [%(time)s] "%(method)s %(path)s %(protocol)s" %(status)d',
    "combined": '%(addr)s - - [%(time)s] "%(method)s %(path)s %(protocol)s" %(status)d %(dt_ms).3f',
}


def access_log_dictconfig(access_log: NativeAccessLog) -> dict[str, Any]:
    """``logging.config.dictConfig`` routing ``granian.access`` to the access log file."""
    handler: dict[str, Any] = {
        "formatter": "access",
        "filename": str(access_log.path),
        "encoding": "utf-8",
        "delay": True,
    }
    if access_log.rotate:
        handler.update({"class": "logging.handlers.TimedRotatingFileHandler", "when": "midnight"})
    else:
        handler["class"] = "logging.FileHandler"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"access": {"format": "%(message)s"}},
        "handlers": {"access_file": handler},
        "loggers": {
            "granian.access": {"handlers": ["access_file"], "level": "INFO", "propagate": False},
        },
    }


class GranianEmbeddedServer:
    """EmbeddedServer backed by Granian."""

    def __init__(self, app: Any, factory: GranianServerFactory, context: ServerContext) -> None:
        self._app = app
        self._context = context
        self._server: Any = None
        self.host = factory.bind_host
        self.port = factory.port
        self.options: dict[str, Any] = {
            "address": self.host,
            "port": self.port,
            "workers": factory.workers,
            "runtime_threads": factory.runtime_threads,
            "runtime_mode": factory.runtime_mode,
            "respawn_failed_workers": factory.respawn_failed_workers,
        }
        if factory.backpressure is not None:
            self.options["backpressure"] = factory.backpressure
        if context.context_path:
            self.options["url_path_prefix"] = context.context_path

        access_log = factory.access_log
        if access_log is not None:
            self.options["log_access"] = access_log.enabled
            if access_log.enabled:
                access_log.directory.mkdir(parents=True, exist_ok=True)
                self.options["log_access_format"] = NAMED_PATTERNS.get(access_log.pattern, access_log.pattern)
                self.options["log_dictconfig"] = access_log_dictconfig(access_log)

    @property
    def context(self) -> ServerContext:
        return self._context

    @property
    def app(self) -> Any:
        return self._app

    def serve(self) -> None:
        """Start Granian (blocking)."""
        from granian import Granian
        from granian.constants import Interfaces

        server = Granian(target=self._app, interface=Interfaces.ASGI, **self.options)
        self._server = server
        logger.info("server_starting", server="granian", host=self.host, port=self.port)
        server.serve()

    async def serve_async(self) -> None:
        """Start Granian (async wrapper)."""
        import asyncio

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.serve)

    def shutdown(self) -> None:
        """Request graceful shutdown."""
        self._server = None

    @property
    def server_info(self) -> ServerInfo:
        return ServerInfo(
            name="granian",
            version=self._get_version(),
            workers=self.options["workers"],
            event_loop="auto",
            http_protocol="auto",
            host=self.host,
            port=self.port,
        )

    @staticmethod
    def _get_version() -> str:
        try:
            return version("granian")
        except PackageNotFoundError:
            return "unknown"
