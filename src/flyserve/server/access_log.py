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
"""Access log files shared by the backend servers.

Every backend writes access lines through a stdlib ``logging.Logger`` so the
same rotating/buffered file handling serves the valve-based and the native
access loggers.
"""

from __future__ import annotations

import logging
import logging.handlers
from dataclasses import dataclass
from pathlib import Path

_BUFFER_CAPACITY = 64


@dataclass(frozen=True)
class NativeAccessLog:
    """Access log settings handed to a backend with its own access logger."""

    enabled: bool
    pattern: str
    directory: Path
    prefix: str
    suffix: str
    rotate: bool

    @property
    def path(self) -> Path:
        return self.directory / f"{self.prefix}{self.suffix}"


def access_log_handler(path: Path, rotate: bool, file_date_format: str | None = None) -> logging.Handler:
    """File handler for *path*; rotating at midnight when *rotate* is set."""
    path.parent.mkdir(parents=True, exist_ok=True)
    handler: logging.FileHandler
    if rotate:
        rotating = logging.handlers.TimedRotatingFileHandler(path, when="midnight", encoding="utf-8", delay=True)
        if file_date_format:
            rotating.suffix = file_date_format.lstrip(".")
        handler = rotating
    else:
        handler = logging.FileHandler(path, encoding="utf-8", delay=True)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def access_logger_name(name: str, path: Path) -> str:
    """Logger name for the access log at *path*, unique per resolved file."""
    return f"{name}[{path.expanduser().resolve()}]"


def create_access_logger(
    name: str,
    path: Path,
    rotate: bool = True,
    buffered: bool = False,
    file_date_format: str | None = None,
) -> logging.Logger:
    """Return a logger under *name* writing bare lines to *path*.

    Each file gets its own logger, so servers built in one process never
    write into each other's logs. Handlers left from a previous build for the
    same file are closed and replaced, so rebuilding never duplicates output.
    """
    logger = logging.getLogger(access_logger_name(name, path))
    for old in list(logger.handlers):
        logger.removeHandler(old)
        if isinstance(old, logging.handlers.MemoryHandler) and old.target is not None:
            old.flush()
            old.target.close()
        old.close()

    handler = access_log_handler(path, rotate, file_date_format)
    if buffered:
        handler = logging.handlers.MemoryHandler(_BUFFER_CAPACITY, flushLevel=logging.ERROR, target=handler)

    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger


def flush_access_logger(logger: logging.Logger) -> None:
    for handler in logger.handlers:
        handler.flush()
