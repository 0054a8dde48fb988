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
"""Uvicorn server factory: valves, connector tuning and context customizers."""

from __future__ import annotations

import dataclasses
import fnmatch
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from flyserve.server.context import ServerContextCustomizer
from flyserve.server.factory import DEFAULT_PORT, AbstractServerFactory, load_app
from flyserve.server.valves import (
    AccessLogValve,
    ContextRootRedirectMiddleware,
    RequestBodyLimitMiddleware,
    Valve,
)

DEFAULT_SCAN_SKIP_PATTERNS = frozenset(
    {
        "pip",
        "setuptools",
        "wheel",
        "pytest",
        "pytest-*",
        "pluggy",
        "uvicorn",
        "flyserve",
    }
)

DEFAULT_BACKGROUND_PROCESSOR_DELAY = 10


@dataclass
class UvicornConnector:
    """Listener settings handed to ``uvicorn.Config`` when the server is built."""

    host: str
    port: int
    backlog: int = 2048
    limit_concurrency: int | None = None
    max_post_size: int | None = None
    max_threads: int | None = None
    min_spare_threads: int | None = None
    timeout_keep_alive: int = 5
    server_header: str | None = None


class ConnectorCustomizer(Protocol):
    def customize(self, connector: UvicornConnector) -> None: ...


class UvicornServerFactory(AbstractServerFactory):
    """Builds :class:`UvicornEmbeddedServer` instances.

    Uvicorn is the reference backend: every valve, connector and context
    setting is supported here.
    """

    name = "uvicorn"

    def __init__(self, port: int = DEFAULT_PORT) -> None:
        super().__init__(port)
        self.background_processor_delay = DEFAULT_BACKGROUND_PROCESSOR_DELAY
        self.base_directory: Path | None = None
        self._engine_valves: list[Valve] = []
        self._context_customizers: list[ServerContextCustomizer] = []
        self._connector_customizers: list[ConnectorCustomizer] = []
        self._scan_skip_patterns: set[str] = set(DEFAULT_SCAN_SKIP_PATTERNS)

    @property
    def engine_valves(self) -> list[Valve]:
        return list(self._engine_valves)

    def add_engine_valves(self, *valves: Valve) -> None:
        """Add valves, outermost first. A valve replaces any valve of the same type."""
        for valve in valves:
            self._engine_valves = [v for v in self._engine_valves if type(v) is not type(valve)]
            self._engine_valves.append(valve)

    @property
    def context_customizers(self) -> list[ServerContextCustomizer]:
        return list(self._context_customizers)

    def add_context_customizers(self, *customizers: ServerContextCustomizer) -> None:
        for customizer in customizers:
            if customizer not in self._context_customizers:
                self._context_customizers.append(customizer)

    @property
    def connector_customizers(self) -> list[ConnectorCustomizer]:
        return list(self._connector_customizers)

    def add_connector_customizers(self, *customizers: ConnectorCustomizer) -> None:
        for customizer in customizers:
            if customizer not in self._connector_customizers:
                self._connector_customizers.append(customizer)

    @property
    def scan_skip_patterns(self) -> frozenset[str]:
        return frozenset(self._scan_skip_patterns)

    def add_scan_skip_patterns(self, *patterns: str) -> None:
        self._scan_skip_patterns.update(patterns)

    def is_scan_skipped(self, distribution: str) -> bool:
        """True when *distribution* matches one of the scan skip glob patterns."""
        name = distribution.lower()
        return any(fnmatch.fnmatchcase(name, pattern.lower()) for pattern in self._scan_skip_patterns)

    def get_server(self, app: Any) -> Any:
        from flyserve.server.adapters.uvicorn.scanner import discover_context_initializers
        from flyserve.server.adapters.uvicorn.server import UvicornEmbeddedServer

        app = load_app(app)
        connector = UvicornConnector(
            host=self.bind_host,
            port=self.port,
            server_header=self.server_header,
        )
        if self.connection_timeout is not None:
            connector.timeout_keep_alive = self.connection_timeout
        for connector_customizer in self._connector_customizers:
            connector_customizer.customize(connector)

        context = self._create_context()
        for context_customizer in self._context_customizers:
            context_customizer.customize(context)
        self._start_context(context, discover_context_initializers(self.is_scan_skipped))

        if connector.max_post_size is not None and connector.max_post_size >= 0:
            app = RequestBodyLimitMiddleware(app, connector.max_post_size)
        if context.context_path and context.mapper_context_root_redirect_enabled:
            app = ContextRootRedirectMiddleware(app, context.context_path)

        valves = [self._resolve_valve(valve) for valve in self._engine_valves]
        for valve in reversed(valves):
            app = valve.wrap(app)

        return UvicornEmbeddedServer(
            app,
            connector=connector,
            context=context,
            background_processor_delay=self.background_processor_delay,
            valves=valves,
        )

    def _resolve_valve(self, valve: Valve) -> Valve:
        if isinstance(valve, AccessLogValve) and self.base_directory is not None and not valve.directory.is_absolute():
            return dataclasses.replace(valve, directory=self.base_directory / valve.directory)
        return valve
