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
"""Hypercorn server factory."""

from __future__ import annotations

from typing import Any

from flyserve.server.access_log import NativeAccessLog
from flyserve.server.factory import DEFAULT_PORT, PersistentSessionFactory, load_app


class HypercornServerFactory(PersistentSessionFactory):
    """Builds :class:`HypercornEmbeddedServer` instances.

    Access logging goes through Hypercorn's own access logger and proxy trust
    is a single on/off switch backed by ``ProxyFixMiddleware``.
    """

    name = "hypercorn"

    def __init__(self, port: int = DEFAULT_PORT) -> None:
        super().__init__(port)
        self.access_log: NativeAccessLog | None = None
        self.workers: int | None = None

    def get_server(self, app: Any) -> Any:
        from flyserve.server.adapters.hypercorn.server import HypercornEmbeddedServer

        app = load_app(app)
        context = self._create_context()
        self._start_context(context)

        if self.use_forward_headers:
            from hypercorn.middleware import ProxyFixMiddleware

            app = ProxyFixMiddleware(app, mode="legacy", trusted_hops=1)

        return HypercornEmbeddedServer(app, self, context)
