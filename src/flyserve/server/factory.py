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
"""Base server factory shared by every backend."""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from flyserve.kernel.exceptions import ConfigurationException
from flyserve.server.context import ServerContext, ServerContextInitializer
from flyserve.server.ports.outbound import EmbeddedServer

DEFAULT_PORT = 8000
DEFAULT_SESSION_TIMEOUT = 1800


class AbstractServerFactory(ABC):
    """Holds the backend-agnostic settings and the context initializers.

    Customizers mutate a factory in place; :meth:`get_server` then builds a
    server whose context is started with every registered initializer.
    """

    name: str = "abstract"

    def __init__(self, port: int = DEFAULT_PORT) -> None:
        self.port = port
        self.address: str | None = None
        self.context_path = ""
        self.display_name: str | None = None
        self.server_header: str | None = None
        self.connection_timeout: int | None = None
        self.session_timeout: int | None = DEFAULT_SESSION_TIMEOUT
        self._initializers: list[ServerContextInitializer] = []

    @property
    def initializers(self) -> list[ServerContextInitializer]:
        return list(self._initializers)

    def add_initializers(self, *initializers: ServerContextInitializer) -> None:
        """Register initializers; one equal to an already registered one is ignored."""
        for initializer in initializers:
            if initializer not in self._initializers:
                self._initializers.append(initializer)

    @property
    def bind_host(self) -> str:
        return self.address or "0.0.0.0"

    @abstractmethod
    def get_server(self, app: Any) -> EmbeddedServer:
        """Build a configured server for *app*. The server is not started."""

    def _create_context(self) -> ServerContext:
        return ServerContext(
            display_name=self.display_name,
            context_path=self.context_path,
            session_timeout=self.session_timeout,
        )

    def _start_context(
        self,
        context: ServerContext,
        extra_initializers: Iterable[ServerContextInitializer] = (),
    ) -> None:
        context.start([*self._initializers, *extra_initializers])


class PersistentSessionFactory(AbstractServerFactory):
    """Factory whose backend can keep sessions in a store directory across restarts."""

    def __init__(self, port: int = DEFAULT_PORT) -> None:
        super().__init__(port)
        self.persist_session = False
        self.session_store_dir: Path | None = None
        self.use_forward_headers = False

    def _valid_session_store_dir(self) -> Path | None:
        """Absolute store directory, created when sessions are persistent."""
        if self.session_store_dir is None:
            return None
        directory = self.session_store_dir.expanduser().resolve()
        if self.persist_session:
            directory.mkdir(parents=True, exist_ok=True)
        return directory

    def _create_context(self) -> ServerContext:
        context = super()._create_context()
        context.session_store_dir = self._valid_session_store_dir()
        return context


def load_app(target: Any) -> Any:
    """Resolve a ``"module:attribute"`` target to the ASGI application it names."""
    if not isinstance(target, str):
        return target
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ConfigurationException(
            f"Application target '{target}' must be in the form 'module:attribute'",
            code="APP_TARGET",
        )
    app: Any = importlib.import_module(module_name)
    for part in attribute.split("."):
        app = getattr(app, part)
    return app
