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
"""Server value types."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class SessionTrackingMode(enum.Enum):
    """How a session id travels between client and server."""

    COOKIE = "cookie"
    URL = "url"
    SSL = "ssl"


@dataclass(frozen=True)
class ServerInfo:
    """Runtime information about a built server."""

    name: str
    version: str
    workers: int
    event_loop: str
    http_protocol: str
    host: str
    port: int
