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
"""Tests for access log file handling."""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from flyserve.server.access_log import (
    NativeAccessLog,
    access_log_handler,
    access_logger_name,
    create_access_logger,
)


class TestAccessLogHandler:
    def test_rotating_handler_uses_date_format(self, tmp_path):
        handler = access_log_handler(tmp_path / "a" / "access.log", rotate=True, file_date_format=".%Y%m%d")
        try:
            assert isinstance(handler, logging.handlers.TimedRotatingFileHandler)
            assert handler.suffix == "%Y%m%d"
            assert (tmp_path / "a").is_dir()
        finally:
            handler.close()

    def test_plain_file_handler(self, tmp_path):
        handler = access_log_handler(tmp_path / "access.log", rotate=False)
        try:
            assert type(handler) is logging.FileHandler
        finally:
            handler.close()


class TestCreateAccessLogger:
    def test_buffered_logger_wraps_file_handler(self, tmp_path):
        logger = create_access_logger("flyserve.access.t1", tmp_path / "access.log", buffered=True)
        (handler,) = logger.handlers
        assert isinstance(handler, logging.handlers.MemoryHandler)
        assert logger.propagate is False

    def test_rebuilding_for_same_file_replaces_handlers(self, tmp_path):
        create_access_logger("flyserve.access.t2", tmp_path / "access.log", rotate=False)
        logger = create_access_logger("flyserve.access.t2", tmp_path / "access.log", rotate=False)
        (handler,) = logger.handlers
        assert Path(handler.baseFilename).name == "access.log"

    def test_different_files_get_independent_loggers(self, tmp_path):
        first = create_access_logger("flyserve.access.t3", tmp_path / "one.log", rotate=False)
        second = create_access_logger("flyserve.access.t3", tmp_path / "two.log", rotate=False)
        assert first is not second
        assert [Path(h.baseFilename).name for h in first.handlers] == ["one.log"]
        assert [Path(h.baseFilename).name for h in second.handlers] == ["two.log"]

    def test_logger_name_includes_resolved_path(self, tmp_path):
        path = tmp_path / "a.log"
        assert access_logger_name("flyserve.access", path) == f"flyserve.access[{path.resolve()}]"


class TestNativeAccessLog:
    def test_path_joins_prefix_and_suffix(self):
        log = NativeAccessLog(True, "common", Path("logs"), "access_log.", "log", True)
        assert log.path == Path("logs/access_log.log")
