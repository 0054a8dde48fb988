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
"""Uvicorn embedded server: ecosystem standard."""

from __future__ import annotations

import asyncio
import contextlib
import os
from concurrent.futures import ThreadPoolExecutor
from importlib.metadata import PackageNotFoundError, version
from typing import Any

import structlog
import uvicorn

from flyserve.server.adapters.uvicorn.factory import UvicornConnector
from flyserve.server.context import ServerContext
from flyserve.server.types import ServerInfo
from flyserve.server.valves import Valve

logger = structlog.get_logger("flyserve.server.uvicorn")


def _noop() -> None:
    return None


class UvicornEmbeddedServer:
    """EmbeddedServer backed by Uvicorn.

    Runs a housekeeping task every ``background_processor_delay`` seconds
    that lets valves flush buffered state.
    """

    def __init__(
        self,
        app: Any,
        connector: UvicornConnector,
        context: ServerContext,
        background_processor_delay: int,
        valves: list[Valve],
    ) -> None:
        self._connector = connector
        self._context = context
        self._valves = valves
        self._server: uvicorn.Server | None = None
        self._executor: ThreadPoolExecutor | None = None
        self.background_processor_delay = background_processor_delay

        headers: list[tuple[str, str]] = []
        if connector.server_header:
            headers.append(("server", connector.server_header))

        self.config = uvicorn.Config(
            app,
            host=connector.host,
            port=connector.port,
            backlog=connector.backlog,
            limit_concurrency=connector.limit_concurrency,
            timeout_keep_alive=connector.timeout_keep_alive,
            root_path=context.context_path,
            server_header=not headers,
            headers=headers,
            proxy_headers=False,
            access_log=False,
            log_config=None,
            log_level="warning",
        )

    @property
    def context(self) -> ServerContext:
        return self._context

    @property
    def connector(self) -> UvicornConnector:
        return self._connector

    @property
    def valves(self) -> list[Valve]:
        return list(self._valves)

    def serve(self) -> None:
        """Start Uvicorn (blocking)."""
        asyncio.run(self.serve_async())

    async def serve_async(self) -> None:
        """Start Uvicorn (async)."""
        self._server = uvicorn.Server(self.config)
        self._install_executor()
        housekeeping = None
        if self.background_processor_delay > 0:
            housekeeping = asyncio.create_task(self._run_background_processor())
        logger.info(
            "server_starting",
            server="uvicorn",
            host=self._connector.host,
            port=self._connector.port,
            display_name=self._context.display_name,
        )
        try:
            await self._server.serve()
        finally:
            if housekeeping is not None:
                housekeeping.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await housekeeping
            self.background_process()
            if self._executor is not None:
                self._executor.shutdown(wait=False)

    def shutdown(self) -> None:
        """Request graceful shutdown."""
        if self._server is not None:
            self._server.should_exit = True

    def background_process(self) -> None:
        """Run one housekeeping pass over the valves."""
        for valve in self._valves:
            process = getattr(valve, "background_process", None)
            if process is not None:
                process()

    async def _run_background_processor(self) -> None:
        while True:
            await asyncio.sleep(self.background_processor_delay)
            self.background_process()

    def _install_executor(self) -> None:
        """Size the loop's default thread pool from the connector."""
        max_threads = self._connector.max_threads
        min_spare = self._connector.min_spare_threads or 0
        if not max_threads and not min_spare:
            return
        workers = max_threads or max(min_spare, min(32, (os.cpu_count() or 1) + 4))
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="flyserve-exec")
        for _ in range(min(min_spare, workers)):
            self._executor.submit(_noop)
        asyncio.get_running_loop().set_default_executor(self._executor)

    @property
    def server_info(self) -> ServerInfo:
        return ServerInfo(
            name="uvicorn",
            version=self._get_version(),
            workers=1,
            event_loop=str(self.config.loop),
            http_protocol="h1",
            host=self._connector.host,
            port=self._connector.port,
        )

    @staticmethod
    def _get_version() -> str:
        try:
            return version("uvicorn")
        except PackageNotFoundError:
            return "unknown"
