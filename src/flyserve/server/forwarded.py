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
"""Deduction of forwarded-header trust from the hosting platform."""

from __future__ import annotations

from collections.abc import Mapping

PLATFORM_INDICATOR = "DYNO"
"""Set on every Heroku dyno, where traffic always arrives through the router."""


def detect_forward_headers(environ: Mapping[str, str]) -> bool:
    """Return True when *environ* shows the process runs behind a managed reverse proxy."""
    return bool(environ.get(PLATFORM_INDICATOR))
