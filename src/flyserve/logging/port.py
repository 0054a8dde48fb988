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
"""LoggingPort: where flyserve hands its ``logging.*`` settings to a logging backend."""

from __future__ import annotations

import dataclasses
from typing import Any, Protocol, runtime_checkable

from flyserve.config.properties.logging import LoggingProperties
from flyserve.core.config import Config


@runtime_checkable
class LoggingPort(Protocol):
    """Logging backend configured once, before any server is built.

    Adapters receive bound :class:`LoggingProperties` and never read raw
    configuration themselves.
    """

    def apply(self, properties: LoggingProperties) -> None: ...
    def get_logger(self, name: str) -> Any: ...


def logging_properties(config: Config) -> LoggingProperties:
    """Bind ``logging.*``; a ``LOGGING_FORMAT`` environment variable overrides the format."""
    props = config.bind(LoggingProperties)
    return dataclasses.replace(props, format=str(config.get("logging.format", props.format)).lower())
