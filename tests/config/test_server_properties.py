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
"""Tests for ServerProperties defaults."""
from __future__ import annotations

from pathlib import Path

from flyserve.config.properties.server import (
    DEFAULT_INTERNAL_PROXIES,
    GranianProperties,
    ServerProperties,
)


class TestServerProperties:
    def test_default_values(self):
        props = ServerProperties()
        assert props.type == "auto"
        assert props.port is None
        assert props.address is None
        assert props.context_path is None
        assert props.display_name == "application"
        assert props.use_forward_headers is None

    def test_session_defaults(self):
        session = ServerProperties().session
        assert session.timeout is None
        assert session.tracking_modes is None
        assert session.persistent is False
        assert session.store_dir is None
        assert session.cookie.name is None
        assert session.cookie.http_only is None

    def test_uvicorn_defaults(self):
        uvicorn = ServerProperties().uvicorn
        assert uvicorn.accesslog.enabled is False
        assert uvicorn.accesslog.buffered is True
        assert uvicorn.accesslog.directory == Path("logs")
        assert uvicorn.background_processor_delay == 30
        assert uvicorn.protocol_header is None
        assert uvicorn.remote_ip_header is None
        assert uvicorn.protocol_header_https_value == "https"
        assert uvicorn.internal_proxies == DEFAULT_INTERNAL_PROXIES
        assert uvicorn.additional_scan_skip_patterns == []

    def test_native_access_log_left_unset(self):
        props = ServerProperties()
        assert props.hypercorn.accesslog.enabled is None
        assert props.granian.accesslog.enabled is None

    def test_granian_defaults(self):
        props = ServerProperties()
        assert props.granian.runtime_threads is None
        assert props.granian.runtime_mode is None
        assert props.granian.backpressure is None
        assert props.granian.respawn_failed_workers is None

    def test_custom_values(self):
        props = ServerProperties(type="granian", port=9000, granian=GranianProperties(runtime_threads=2))
        assert props.type == "granian"
        assert props.port == 9000
        assert props.granian.runtime_threads == 2

    def test_has_config_properties_prefix(self):
        assert hasattr(ServerProperties, "__flyserve_config_prefix__")
        assert ServerProperties.__flyserve_config_prefix__ == "server"
