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
"""One-call assembly of a configured server."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from flyserve.config.properties.server import ServerProperties
from flyserve.core.config import Config
from flyserve.logging.port import LoggingPort, logging_properties
from flyserve.logging.structlog_adapter import StructlogAdapter
from flyserve.server.auto_configuration import ServerAutoConfiguration
from flyserve.server.customizer import ServerFactoryCustomizer
from flyserve.server.ports.outbound import EmbeddedServer

logger = structlog.get_logger("flyserve.server")


def bootstrap_server(
    config: Config,
    app: Any,
    environ: Mapping[str, str] | None = None,
    logging_port: LoggingPort | None = None,
) -> EmbeddedServer:
    """Configure logging, bind ``server.*``, then select, customize and build the server.

    The returned server has its context started and is ready to ``serve()``.
    """
    (logging_port or StructlogAdapter()).apply(logging_properties(config))

    properties = config.bind(ServerProperties)
    factory = ServerAutoConfiguration().server_factory(properties.type)
    ServerFactoryCustomizer(properties, environ=environ).customize(factory)
    server = factory.get_server(app)

    logger.info(
        "server_configured",
        backend=factory.name,
        host=factory.bind_host,
        port=factory.port,
        display_name=factory.display_name,
    )
    return server
