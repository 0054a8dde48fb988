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
"""Helpers shared by the backends that carry their own access logger."""

from __future__ import annotations

from pathlib import Path

from flyserve.config.properties.server import NativeAccessLogProperties
from flyserve.server.access_log import NativeAccessLog


def native_access_log(props: NativeAccessLogProperties) -> NativeAccessLog | None:
    """Settings to hand to the backend, or None when ``enabled`` was never configured."""
    if props.enabled is None:
        return None
    return NativeAccessLog(
        enabled=props.enabled,
        pattern=props.pattern,
        directory=Path(props.dir),
        prefix=props.prefix,
        suffix=props.suffix,
        rotate=props.rotate,
    )
