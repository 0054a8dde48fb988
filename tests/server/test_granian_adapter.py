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
"""Tests for the granian backend customizer and factory."""
from __future__ import annotations

import copy
from pathlib import Path
from unittest.mock import patch

import pytest

from flyserve.config.properties.server import ServerProperties
from flyserve.core.config import Config
from flyserve.server.access_log import NativeAccessLog
from flyserve.server.adapters.granian.factory import GranianServerFactory
from flyserve.server.adapters.granian.server import access_log_dictconfig
from flyserve.server.customizer import ServerFactoryCustomizer


def _customize(properties: dict[str, str] | None = None, environ: dict[str, str] | None = None):
    props = Config.from_properties(properties or {}, environ={}).bind(ServerProperties)
    factory = GranianServerFactory()
    ServerFactoryCustomizer(props, environ=environ or {}).customize(factory)
    return factory


async def _asgi_app(scope, receive, send):
    return None


class TestGranianCustomizer:
    def test_access_log_untouched_when_enabled_unset(self):
        assert _customize().access_log is None

    def test_access_log_settings_are_copied(self):
        factory = _customize(
            {
                "server.granian.accesslog.enabled": "true",
                "server.granian.accesslog.pattern": "foo",
                "server.granian.accesslog.dir": "test-logs",
                "server.granian.accesslog.rotate": "false",
            }
        )
        assert factory.access_log == NativeAccessLog(
            enabled=True,
            pattern="foo",
            directory=Path("test-logs"),
            prefix="access_log.",
            suffix="log",
            rotate=False,
        )

    def test_forward_headers_false_by_default(self):
        assert _customize().use_forward_headers is False

    def test_forward_headers_explicit(self):
        assert _customize({"server.use-forward-headers": "true"}).use_forward_headers is True

    def test_forward_headers_deduced_from_platform(self):
        assert _customize(environ={"DYNO": "web.1"}).use_forward_headers is True

    def test_session_store_dir(self):
        assert _customize({"server.session.store-dir": "myfolder"}).session_store_dir == Path("myfolder")

    def test_unset_runtime_tuning_keeps_factory_defaults(self):
        factory = GranianServerFactory()
        factory.runtime_threads = 8
        factory.runtime_mode = "st"
        factory.respawn_failed_workers = False
        props = Config.from_properties({}, environ={}).bind(ServerProperties)
        ServerFactoryCustomizer(props, environ={}).customize(factory)

        assert factory.runtime_threads == 8
        assert factory.runtime_mode == "st"
        assert factory.backpressure is None
        assert factory.respawn_failed_workers is False

    def test_runtime_tuning(self):
        factory = _customize(
            {
                "server.granian.runtime-threads": "4",
                "server.granian.runtime-mode": "mt",
                "server.granian.backpressure": "128",
                "server.granian.respawn-failed-workers": "false",
            }
        )
        assert factory.runtime_threads == 4
        assert factory.runtime_mode == "mt"
        assert factory.backpressure == 128
        assert factory.respawn_failed_workers is False


class TestAccessLogDictConfig:
    def test_rotating_handler(self, tmp_path):
        log = NativeAccessLog(True, "common", tmp_path, "access.", "log", True)
        handler = access_log_dictconfig(log)["handlers"]["access_file"]
        assert handler["class"] == "logging.handlers.TimedRotatingFileHandler"
        assert handler["filename"] == str(tmp_path / "access.log")

    def test_plain_file_handler(self, tmp_path):
        log = NativeAccessLog(True, "common", tmp_path, "access.", "log", False)
        handler = access_log_dictconfig(log)["handlers"]["access_file"]
        assert handler["class"] == "logging.FileHandler"


class TestGranianServer:
    def test_options_from_factory(self):
        factory = _customize(
            {"server.port": "9002", "server.context-path": "/api", "server.granian.backpressure": "64"}
        )
        server = factory.get_server(_asgi_app)
        assert server.options["port"] == 9002
        assert server.options["address"] == "0.0.0.0"
        assert server.options["url_path_prefix"] == "/api"
        assert server.options["backpressure"] == 64
        assert "log_access" not in server.options

    def test_access_log_options(self, tmp_path):
        factory = _customize(
            {"server.granian.accesslog.enabled": "true", "server.granian.accesslog.dir": str(tmp_path / "logs")}
        )
        server = factory.get_server(_asgi_app)
        assert server.options["log_access"] is True
        assert "log_dictconfig" in server.options
        assert (tmp_path / "logs").is_dir()

    def test_server_info(self):
        info = GranianServerFactory().get_server(_asgi_app).server_info
        assert info.name == "granian"
        assert info.workers == 1

    def test_serve_creates_granian_with_options(self):
        pytest.importorskip("granian")
        server = _customize({"server.port": "9003"}).get_server(_asgi_app)
        with patch("granian.Granian") as mock_granian_cls:
            server.serve()

        mock_granian_cls.assert_called_once()
        call_kwargs = mock_granian_cls.call_args[1]
        assert call_kwargs["target"] is _asgi_app
        assert call_kwargs["port"] == 9003
        mock_granian_cls.return_value.serve.assert_called_once()

    def test_forward_headers_wrap_app(self):
        pytest.importorskip("granian")
        server = _customize({"server.use-forward-headers": "true"}).get_server(_asgi_app)
        assert server.app is not _asgi_app


class TestGranianIdempotence:
    def test_customizing_twice_yields_same_state(self):
        props = Config.from_properties(
            {
                "server.use-forward-headers": "true",
                "server.granian.accesslog.enabled": "true",
                "server.granian.runtime-threads": "2",
                "server.session.store-dir": "myfolder",
                "server.session.cookie.name": "sid",
            },
            environ={},
        ).bind(ServerProperties)
        customizer = ServerFactoryCustomizer(props, environ={})
        factory = GranianServerFactory()

        customizer.customize(factory)
        first = copy.deepcopy(vars(factory))
        customizer.customize(factory)

        assert vars(factory) == first
        assert len(factory.initializers) == 1
