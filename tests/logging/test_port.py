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
"""Tests for the LoggingPort protocol and logging property resolution."""
from __future__ import annotations

from typing import Any

from flyserve.config.properties.logging import LoggingProperties
from flyserve.core.config import Config
from flyserve.logging.port import LoggingPort, logging_properties


class _FakeLogging:
    def apply(self, properties: LoggingProperties) -> None:
        pass

    def get_logger(self, name: str) -> Any:
        return None


class _Incomplete:
    def apply(self, properties: LoggingProperties) -> None:
        pass


class TestLoggingPort:
    def test_duck_typed_class_is_logging_port(self):
        assert isinstance(_FakeLogging(), LoggingPort)

    def test_incomplete_class_is_not_logging_port(self):
        assert not isinstance(_Incomplete(), LoggingPort)


class TestLoggingProperties:
    def test_defaults(self):
        props = logging_properties(Config({}, environ={}))
        assert props.level == {"root": "INFO"}
        assert props.format == "console"

    def test_bound_from_config(self):
        config = Config({"logging": {"level": {"root": "WARNING"}, "format": "JSON"}}, environ={})
        props = logging_properties(config)
        assert props.level == {"root": "WARNING"}
        assert props.format == "json"

    def test_environment_overrides_format(self):
        config = Config({"logging": {"format": "console"}}, environ={"LOGGING_FORMAT": "json"})
        assert logging_properties(config).format == "json"
