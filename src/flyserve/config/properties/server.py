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
"""Application server configuration properties."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any

from pydantic import BeforeValidator

from flyserve.core.config import config_properties
from flyserve.server.types import SessionTrackingMode

# 10/8, 192.168/16, 169.254/16, 127/8 and 172.16/12
DEFAULT_INTERNAL_PROXIES = (
    r"10\.\d{1,3}\.\d{1,3}\.\d{1,3}|"
    r"192\.168\.\d{1,3}\.\d{1,3}|"
    r"169\.254\.\d{1,3}\.\d{1,3}|"
    r"127\.\d{1,3}\.\d{1,3}\.\d{1,3}|"
    r"172\.1[6-9]\.\d{1,3}\.\d{1,3}|"
    r"172\.2[0-9]\.\d{1,3}\.\d{1,3}|"
    r"172\.3[0-1]\.\d{1,3}\.\d{1,3}"
)


def _tracking_mode_name(value: Any) -> Any:
    """Accept mode names in any case (``COOKIE``, ``Cookie``, ``cookie``)."""
    if isinstance(value, str):
        return value.strip().lower()
    return value


TrackingMode = Annotated[SessionTrackingMode, BeforeValidator(_tracking_mode_name)]


@dataclass
class CookieProperties:
    """Session cookie attributes (server.session.cookie.*).

    Unset attributes leave the server context defaults untouched.
    """

    name: str | None = None
    domain: str | None = None
    path: str | None = None
    comment: str | None = None
    http_only: bool | None = None
    secure: bool | None = None
    max_age: int | None = None


@dataclass
class SessionProperties:
    """Session policy (server.session.*)."""

    timeout: int | None = None
    """Session timeout in seconds."""

    tracking_modes: set[TrackingMode] | None = None
    """Replacing set: when configured it becomes the context's complete set of modes."""

    persistent: bool = False
    store_dir: Path | None = None
    cookie: CookieProperties = field(default_factory=CookieProperties)


@dataclass
class UvicornAccessLogProperties:
    """Access log valve settings (server.uvicorn.accesslog.*)."""

    enabled: bool = False
    pattern: str = "common"
    directory: Path = Path("logs")
    prefix: str = "access_log"
    suffix: str = ".log"
    rotate: bool = True
    buffered: bool = True
    file_date_format: str = ".%Y-%m-%d"


@dataclass
class UvicornProperties:
    """Uvicorn-specific settings (server.uvicorn.*)."""

    accesslog: UvicornAccessLogProperties = field(default_factory=UvicornAccessLogProperties)
    basedir: Path | None = None
    internal_proxies: str = DEFAULT_INTERNAL_PROXIES
    protocol_header: str | None = None
    protocol_header_https_value: str = "https"
    port_header: str = "X-Forwarded-Port"
    remote_ip_header: str | None = None
    background_processor_delay: int = 30
    """Seconds between runs of the server's housekeeping task."""

    max_threads: int | None = None
    min_spare_threads: int | None = None
    max_http_post_size: int | None = None
    max_connections: int | None = None
    accept_count: int | None = None
    redirect_context_root: bool | None = None
    additional_scan_skip_patterns: list[str] = field(default_factory=list)
    """Additive: appended to the factory's built-in skip patterns, never replacing them."""


@dataclass
class NativeAccessLogProperties:
    """Access log settings for backends with a native access logger."""

    enabled: bool | None = None
    pattern: str = "common"
    dir: Path = Path("logs")
    prefix: str = "access_log."
    suffix: str = "log"
    rotate: bool = True


@dataclass
class HypercornProperties:
    """Hypercorn-specific settings (server.hypercorn.*)."""

    accesslog: NativeAccessLogProperties = field(default_factory=NativeAccessLogProperties)
    workers: int | None = None


@dataclass
class GranianProperties:
    """Granian-specific tuning (server.granian.*).

    Unset knobs keep the factory defaults.
    """

    accesslog: NativeAccessLogProperties = field(default_factory=NativeAccessLogProperties)
    runtime_threads: int | None = None
    runtime_mode: str | None = None
    backpressure: int | None = None
    respawn_failed_workers: bool | None = None


@config_properties(prefix="server")
@dataclass
class ServerProperties:
    """Configuration for the embedded application server (server.*)."""

    type: str = "auto"
    port: int | None = None
    address: str | None = None
    context_path: str | None = None
    display_name: str = "application"
    server_header: str | None = None
    connection_timeout: int | None = None
    use_forward_headers: bool | None = None
    session: SessionProperties = field(default_factory=SessionProperties)
    uvicorn: UvicornProperties = field(default_factory=UvicornProperties)
    hypercorn: HypercornProperties = field(default_factory=HypercornProperties)
    granian: GranianProperties = field(default_factory=GranianProperties)
