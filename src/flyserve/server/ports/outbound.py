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
"""Outbound ports: server factory and embedded server interfaces."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from flyserve.server.context import ServerContext, ServerContextInitializer
from flyserve.server.types import ServerInfo


@runtime_checkable
class ConfigurableServerFactory(Protocol):
    """Backend-agnostic settings every server factory accepts.

    The customizer only relies on this surface for its common pass, so any
    object satisfying it can be customized, even for backends it does not know.
    """

    port: int
    address: str | None
    context_path: str
    display_name: str | None
    server_header: str | None
    connection_timeout: int | None
    session_timeout: int | None

    def add_initializers(self, *initializers: ServerContextInitializer) -> None: ...


@runtime_checkable
class EmbeddedServer(Protocol):
    """A built, startable server.

    Every backend server exposes blocking and async entry points and
    graceful shutdown.
    """

    @property
    def context(self) -> ServerContext: ...

    def serve(self) -> None:
        """Start the server (blocking)."""
        ...

    async def serve_async(self) -> None:
        """Start the server (async). For embedding in existing event loops."""
        ...

    def shutdown(self) -> None:
        """Request graceful shutdown."""
        ...

    @property
    def server_info(self) -> ServerInfo:
        """Return runtime info (name, version, workers, event loop, protocol)."""
        ...


@runtime_checkable
class ServerFactory(ConfigurableServerFactory, Protocol):
    """A configurable factory that can also build its server."""

    def get_server(self, app: Any) -> EmbeddedServer: ...
