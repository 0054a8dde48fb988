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
"""Projection of ``server.uvicorn.*`` onto :class:`UvicornServerFactory`."""

from __future__ import annotations

from dataclasses import dataclass

from flyserve.config.properties.server import ServerProperties, UvicornProperties
from flyserve.server.adapters.uvicorn.factory import UvicornConnector, UvicornServerFactory
from flyserve.server.context import ServerContext
from flyserve.server.valves import AccessLogValve, RemoteIpValve

DEFAULT_PROTOCOL_HEADER = "X-Forwarded-Proto"
DEFAULT_REMOTE_IP_HEADER = "X-Forwarded-For"


@dataclass(frozen=True)
class AcceptCountCustomizer:
    accept_count: int

    def customize(self, connector: UvicornConnector) -> None:
        connector.backlog = self.accept_count


@dataclass(frozen=True)
class MaxConnectionsCustomizer:
    max_connections: int

    def customize(self, connector: UvicornConnector) -> None:
        connector.limit_concurrency = self.max_connections


@dataclass(frozen=True)
class MaxHttpPostSizeCustomizer:
    max_http_post_size: int

    def customize(self, connector: UvicornConnector) -> None:
        connector.max_post_size = self.max_http_post_size


@dataclass(frozen=True)
class MaxThreadsCustomizer:
    max_threads: int

    def customize(self, connector: UvicornConnector) -> None:
        connector.max_threads = self.max_threads


@dataclass(frozen=True)
class MinSpareThreadsCustomizer:
    min_spare_threads: int

    def customize(self, connector: UvicornConnector) -> None:
        connector.min_spare_threads = self.min_spare_threads


@dataclass(frozen=True)
class RedirectContextRootCustomizer:
    redirect_context_root: bool

    def customize(self, context: ServerContext) -> None:
        context.mapper_context_root_redirect_enabled = self.redirect_context_root


class UvicornFactoryCustomizer:
    """Installs valves and connector/context customizers on a uvicorn factory."""

    factory_type = UvicornServerFactory

    def customize(
        self,
        factory: UvicornServerFactory,
        properties: ServerProperties,
        use_forward_headers: bool,
    ) -> None:
        uvicorn_props = properties.uvicorn
        if uvicorn_props.basedir is not None:
            factory.base_directory = uvicorn_props.basedir
        factory.background_processor_delay = uvicorn_props.background_processor_delay

        self._customize_remote_ip_valve(factory, uvicorn_props, use_forward_headers)
        if uvicorn_props.accesslog.enabled:
            self._customize_access_log(factory, uvicorn_props)

        if uvicorn_props.max_threads is not None and uvicorn_props.max_threads > 0:
            factory.add_connector_customizers(MaxThreadsCustomizer(uvicorn_props.max_threads))
        if uvicorn_props.min_spare_threads is not None and uvicorn_props.min_spare_threads > 0:
            factory.add_connector_customizers(MinSpareThreadsCustomizer(uvicorn_props.min_spare_threads))
        if uvicorn_props.max_http_post_size is not None:
            factory.add_connector_customizers(MaxHttpPostSizeCustomizer(uvicorn_props.max_http_post_size))
        if uvicorn_props.max_connections is not None:
            factory.add_connector_customizers(MaxConnectionsCustomizer(uvicorn_props.max_connections))
        if uvicorn_props.accept_count is not None:
            factory.add_connector_customizers(AcceptCountCustomizer(uvicorn_props.accept_count))

        if uvicorn_props.redirect_context_root is not None:
            factory.add_context_customizers(RedirectContextRootCustomizer(uvicorn_props.redirect_context_root))
        if uvicorn_props.additional_scan_skip_patterns:
            factory.add_scan_skip_patterns(*uvicorn_props.additional_scan_skip_patterns)

    @staticmethod
    def _customize_remote_ip_valve(
        factory: UvicornServerFactory,
        props: UvicornProperties,
        use_forward_headers: bool,
    ) -> None:
        protocol_header = props.protocol_header
        remote_ip_header = props.remote_ip_header
        # Both headers set to "" switch the valve off whatever else is configured.
        if protocol_header == "" and remote_ip_header == "":
            return
        if not (protocol_header or remote_ip_header or use_forward_headers):
            return
        factory.add_engine_valves(
            RemoteIpValve(
                remote_ip_header=remote_ip_header or DEFAULT_REMOTE_IP_HEADER,
                protocol_header=protocol_header or DEFAULT_PROTOCOL_HEADER,
                protocol_header_https_value=props.protocol_header_https_value,
                port_header=props.port_header or None,
                internal_proxies=props.internal_proxies,
            )
        )

    @staticmethod
    def _customize_access_log(factory: UvicornServerFactory, props: UvicornProperties) -> None:
        accesslog = props.accesslog
        factory.add_engine_valves(
            AccessLogValve(
                pattern=accesslog.pattern,
                directory=accesslog.directory,
                prefix=accesslog.prefix,
                suffix=accesslog.suffix,
                rotate=accesslog.rotate,
                buffered=accesslog.buffered,
                file_date_format=accesslog.file_date_format,
            )
        )
