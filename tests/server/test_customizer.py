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
"""Tests for ServerFactoryCustomizer common settings and backend dispatch."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from flyserve.config.properties.server import ServerProperties
from flyserve.core.config import Config
from flyserve.server.adapters.granian.factory import GranianServerFactory
from flyserve.server.adapters.hypercorn.factory import HypercornServerFactory
from flyserve.server.adapters.uvicorn.factory import UvicornServerFactory
from flyserve.server.context import ServerContext
from flyserve.server.customizer import ServerFactoryCustomizer, SessionConfiguringInitializer
from flyserve.server.factory import DEFAULT_PORT
from flyserve.server.ports.outbound import ConfigurableServerFactory
from flyserve.server.types import SessionTrackingMode


class _PlainFactory:
    """Factory no backend customizer recognizes."""

    def __init__(self) -> None:
        self.port = DEFAULT_PORT
        self.address: str | None = None
        self.context_path = ""
        self.display_name: str | None = None
        self.server_header: str | None = None
        self.connection_timeout: int | None = None
        self.session_timeout: int | None = None
        self.initializers: list[Any] = []

    def add_initializers(self, *initializers: Any) -> None:
        for initializer in initializers:
            if initializer not in self.initializers:
                self.initializers.append(initializer)


def _customizer(properties: dict[str, str] | None = None, environ: dict[str, str] | None = None):
    props = Config.from_properties(properties or {}, environ={}).bind(ServerProperties)
    return ServerFactoryCustomizer(props, environ=environ or {})


def _started_context(factory) -> ServerContext:
    context = ServerContext()
    context.start(factory.initializers)
    return context


class TestCommonSettings:
    def test_plain_factory_satisfies_protocol(self):
        assert isinstance(_PlainFactory(), ConfigurableServerFactory)

    def test_default_display_name(self):
        factory = _PlainFactory()
        _customizer().customize(factory)
        assert factory.display_name == "application"

    def test_custom_display_name(self):
        factory = _PlainFactory()
        _customizer({"server.display-name": "TestName"}).customize(factory)
        assert factory.display_name == "TestName"

    def test_unset_port_is_never_written(self):
        factory = _PlainFactory()
        factory.port = 9999
        _customizer().customize(factory)
        assert factory.port == 9999

    def test_configured_port_is_written(self):
        factory = _PlainFactory()
        _customizer({"server.port": "9000"}).customize(factory)
        assert factory.port == 9000

    def test_address_context_path_and_header(self):
        factory = _PlainFactory()
        _customizer(
            {
                "server.address": "127.0.0.1",
                "server.context-path": "/api",
                "server.server-header": "flyserve",
                "server.connection-timeout": "15",
            }
        ).customize(factory)
        assert factory.address == "127.0.0.1"
        assert factory.context_path == "/api"
        assert factory.server_header == "flyserve"
        assert factory.connection_timeout == 15

    def test_session_timeout(self):
        factory = _PlainFactory()
        _customizer({"server.session.timeout": "123"}).customize(factory)
        assert factory.session_timeout == 123

    def test_unset_session_timeout_keeps_factory_value(self):
        factory = UvicornServerFactory()
        _customizer().customize(factory)
        assert factory.session_timeout == 1800

    def test_unknown_factory_gets_common_settings_without_error(self):
        factory = _PlainFactory()
        _customizer({"server.uvicorn.accept-count": "10", "server.session.store-dir": "sessions"}).customize(factory)
        assert factory.display_name == "application"
        assert len(factory.initializers) == 1


class TestSessionInitializer:
    def test_exactly_one_initializer_registered(self):
        factory = UvicornServerFactory()
        customizer = _customizer({"server.session.cookie.name": "testname"})
        customizer.customize(factory)
        customizer.customize(factory)
        assert len(factory.initializers) == 1
        assert isinstance(factory.initializers[0], SessionConfiguringInitializer)

    def test_cookie_settings_applied_once_context_starts(self):
        factory = _PlainFactory()
        _customizer(
            {
                "server.session.cookie.name": "testname",
                "server.session.cookie.domain": "testdomain",
                "server.session.cookie.path": "/testpath",
                "server.session.cookie.comment": "testcomment",
                "server.session.cookie.http-only": "true",
                "server.session.cookie.secure": "true",
                "server.session.cookie.max-age": "60",
            }
        ).customize(factory)

        cookie = _started_context(factory).session_cookie_config
        assert cookie.name == "testname"
        assert cookie.domain == "testdomain"
        assert cookie.path == "/testpath"
        assert cookie.comment == "testcomment"
        assert cookie.http_only is True
        assert cookie.secure is True
        assert cookie.max_age == 60

    def test_unset_cookie_attributes_keep_context_defaults(self):
        factory = _PlainFactory()
        _customizer({"server.session.cookie.name": "sid"}).customize(factory)
        cookie = _started_context(factory).session_cookie_config
        assert cookie.name == "sid"
        assert cookie.domain is None
        assert cookie.http_only is False
        assert cookie.max_age is None

    def test_tracking_modes_replace_defaults(self):
        factory = _PlainFactory()
        _customizer({"server.session.tracking-modes": "ssl"}).customize(factory)
        context = _started_context(factory)
        assert context.session_tracking_modes == {SessionTrackingMode.SSL}

    def test_unset_tracking_modes_keep_defaults(self):
        factory = _PlainFactory()
        _customizer().customize(factory)
        context = _started_context(factory)
        assert context.session_tracking_modes == {SessionTrackingMode.COOKIE, SessionTrackingMode.URL}

    def test_built_server_context_has_cookie_settings(self):
        pytest.importorskip("uvicorn")
        factory = UvicornServerFactory()
        _customizer({"server.session.cookie.name": "built"}).customize(factory)
        server = factory.get_server(_asgi_app)
        assert server.context.session_cookie_config.name == "built"
        assert server.context.started


class TestForwardHeaders:
    def test_explicit_value_wins(self):
        assert _customizer({"server.use-forward-headers": "true"}).use_forward_headers() is True

    def test_explicit_false_wins_over_platform(self):
        customizer = _customizer({"server.use-forward-headers": "false"}, environ={"DYNO": "web.1"})
        assert customizer.use_forward_headers() is False

    def test_deduced_from_platform_when_unset(self):
        assert _customizer(environ={"DYNO": "web.1"}).use_forward_headers() is True

    def test_false_when_unset_and_not_on_platform(self):
        assert _customizer().use_forward_headers() is False

    def test_environment_is_snapshotted_at_construction(self, monkeypatch):
        monkeypatch.delenv("DYNO", raising=False)
        customizer = ServerFactoryCustomizer(ServerProperties())
        monkeypatch.setenv("DYNO", "web.1")
        assert customizer.use_forward_headers() is False


class TestBackendDispatch:
    @pytest.mark.parametrize("factory_cls", [HypercornServerFactory, GranianServerFactory])
    def test_native_backends_receive_effective_forward_headers(self, factory_cls):
        factory = factory_cls()
        _customizer(environ={"DYNO": "web.1"}).customize(factory)
        assert factory.use_forward_headers is True

    def test_only_matching_backend_is_applied(self):
        factory = HypercornServerFactory()
        _customizer({"server.session.store-dir": "myfolder"}).customize(factory)
        assert factory.session_store_dir == Path("myfolder")
        assert not hasattr(factory, "engine_valves")


async def _asgi_app(scope, receive, send):
    return None
