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
"""Translation of ``server.*`` properties onto a server factory."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from flyserve.config.properties.server import ServerProperties, SessionProperties
from flyserve.server.context import ServerContext
from flyserve.server.forwarded import detect_forward_headers
from flyserve.server.ports.outbound import ConfigurableServerFactory

logger = structlog.get_logger("flyserve.server")


class BackendCustomizer(Protocol):
    """Projects backend-specific properties onto one factory type."""

    factory_type: type

    def customize(self, factory: Any, properties: ServerProperties, use_forward_headers: bool) -> None: ...


@dataclass
class SessionConfiguringInitializer:
    """Writes tracking modes and cookie attributes once the context exists."""

    session: SessionProperties

    def on_startup(self, context: ServerContext) -> None:
        if self.session.tracking_modes is not None:
            context.set_session_tracking_modes(self.session.tracking_modes)

        cookie = self.session.cookie
        config = context.session_cookie_config
        if cookie.name is not None:
            config.name = cookie.name
        if cookie.domain is not None:
            config.domain = cookie.domain
        if cookie.path is not None:
            config.path = cookie.path
        if cookie.comment is not None:
            config.comment = cookie.comment
        if cookie.http_only is not None:
            config.http_only = cookie.http_only
        if cookie.secure is not None:
            config.secure = cookie.secure
        if cookie.max_age is not None:
            config.max_age = cookie.max_age


def default_backend_customizers() -> tuple[BackendCustomizer, ...]:
    from flyserve.server.adapters.granian.customizer import GranianFactoryCustomizer
    from flyserve.server.adapters.hypercorn.customizer import HypercornFactoryCustomizer
    from flyserve.server.adapters.uvicorn.customizer import UvicornFactoryCustomizer

    return (UvicornFactoryCustomizer(), HypercornFactoryCustomizer(), GranianFactoryCustomizer())


class ServerFactoryCustomizer:
    """Applies :class:`ServerProperties` to any server factory.

    Common settings go through :class:`ConfigurableServerFactory`; the rest is
    handed to the backend customizer matching the factory's type. Factories no
    backend customizer recognizes receive the common settings only.

    Args:
        properties: Bound server properties, read-only during customization.
        environ: Environment snapshot used to deduce forwarded-header trust.
            Defaults to a copy of ``os.environ`` taken at construction.
        backends: Backend customizers to dispatch to.
    """

    def __init__(
        self,
        properties: ServerProperties,
        environ: Mapping[str, str] | None = None,
        backends: Iterable[BackendCustomizer] | None = None,
    ) -> None:
        self._properties = properties
        self._environ: dict[str, str] = dict(os.environ if environ is None else environ)
        self._backends = tuple(backends) if backends is not None else default_backend_customizers()

    @property
    def properties(self) -> ServerProperties:
        return self._properties

    def use_forward_headers(self) -> bool:
        """Explicit ``use-forward-headers`` if set, otherwise the platform deduction."""
        if self._properties.use_forward_headers is not None:
            return self._properties.use_forward_headers
        return detect_forward_headers(self._environ)

    def customize(self, factory: ConfigurableServerFactory) -> None:
        props = self._properties

        factory.display_name = props.display_name
        if props.port is not None:
            factory.port = props.port
        if props.address is not None:
            factory.address = props.address
        if props.context_path is not None:
            factory.context_path = props.context_path
        if props.server_header is not None:
            factory.server_header = props.server_header
        if props.connection_timeout is not None:
            factory.connection_timeout = props.connection_timeout
        if props.session.timeout is not None:
            factory.session_timeout = props.session.timeout
        factory.add_initializers(SessionConfiguringInitializer(props.session))

        use_forward_headers = self.use_forward_headers()
        for backend in self._backends:
            if isinstance(factory, backend.factory_type):
                backend.customize(factory, props, use_forward_headers)
                logger.debug(
                    "server_factory_customized",
                    backend=type(backend).__name__,
                    use_forward_headers=use_forward_headers,
                )
                return

        logger.debug("server_factory_backend_unknown", factory=type(factory).__name__)
