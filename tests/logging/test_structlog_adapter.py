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
"""Tests for StructlogAdapter, the default LoggingPort implementation."""
from __future__ import annotations

import logging

from flyserve.config.properties.logging import LoggingProperties
from flyserve.core.config import Config
from flyserve.logging.port import LoggingPort
from flyserve.logging.structlog_adapter import StructlogAdapter


class TestStructlogAdapterConformance:
    def test_implements_logging_port(self):
        assert isinstance(StructlogAdapter(), LoggingPort)


class TestStructlogAdapterConfigure:
    def test_configure_with_defaults(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}, environ={}))
        assert adapter._root_level == "INFO"
        assert adapter._format == "console"

    def test_configure_reads_root_level(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"logging": {"level": {"root": "debug"}}}, environ={}))
        assert adapter._root_level == "DEBUG"

    def test_configure_reads_format(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"logging": {"format": "json"}}, environ={}))
        assert adapter._format == "json"

    def test_format_from_environment(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}, environ={"LOGGING_FORMAT": "JSON"}))
        assert adapter._format == "json"

    def test_configure_reads_per_module_levels(self):
        adapter = StructlogAdapter()
        config = Config({"logging": {"level": {"root": "INFO", "flyserve.server": "DEBUG"}}}, environ={})
        adapter.configure(config)
        assert adapter._module_levels == {"flyserve.server": "DEBUG"}
        assert logging.getLogger("flyserve.server").level == logging.DEBUG


class TestStructlogAdapterGetLogger:
    def test_get_logger_returns_bound_logger(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}, environ={}))
        logger = adapter.get_logger("flyserve.test")
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "debug", None))


class TestStructlogAdapterSetLevel:
    def test_set_level_updates_stdlib_logger(self):
        adapter = StructlogAdapter()
        adapter.set_level("flyserve.access", "WARNING")
        assert logging.getLogger("flyserve.access").level == logging.WARNING


class TestStructlogAdapterApply:
    def test_apply_bound_properties(self):
        adapter = StructlogAdapter()
        adapter.apply(LoggingProperties(level={"root": "warning", "flyserve.access": "error"}, format="json"))
        assert adapter._root_level == "WARNING"
        assert adapter._module_levels == {"flyserve.access": "ERROR"}
        assert adapter._format == "json"
