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
"""Discovery of context initializers published by installed distributions."""

from __future__ import annotations

from collections.abc import Callable
from importlib.metadata import entry_points
from typing import Any

import structlog

logger = structlog.get_logger("flyserve.server.uvicorn")

ENTRY_POINT_GROUP = "flyserve.context_initializers"


def discover_context_initializers(is_skipped: Callable[[str], bool]) -> list[Any]:
    """Load initializers from the ``flyserve.context_initializers`` entry point group.

    Distributions matching a skip pattern are not loaded at all. Entry points
    naming a class are instantiated with no arguments.
    """
    initializers: list[Any] = []
    for entry_point in entry_points(group=ENTRY_POINT_GROUP):
        distribution = entry_point.dist.name if entry_point.dist is not None else ""
        if distribution and is_skipped(distribution):
            logger.debug("context_initializer_skipped", distribution=distribution, entry_point=entry_point.name)
            continue
        target = entry_point.load()
        initializers.append(target() if isinstance(target, type) else target)
    return initializers
