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
"""Granian server factory."""

from __future__ import annotations

from typing import Any

from flyserve.server.access_log import NativeAccessLog
from flyserve.server.factory import DEFAULT_PORT, PersistentSessionFactory, load_app


class GranianServerFactory(PersistentSessionFactory):
    """Builds :class:`GranianEmbeddedServer` instances.

    Granian uses Rust's Hyper + Tokio for network I/O. Proxy trust is a
    single on/off switch backed by Granian's proxy-header wrapper.
    """

    name = "granian"

    def __init__(self, port: int = DEFAULT_PORT) -> None:
        super().__init__(port)
        self.access_log: NativeAccessLog | None = None
        self.workers = 1
        self.runtime_threads = 1
        self.runtime_mode = "auto"
        self.backpressure: int | None = None
        self.respawn_failed_workers = True

    def get_server(self, app: Any) -> Any:
        from flyserve.server.adapters.granian.server import GranianEmbeddedServer

        app = load_app(app)
        context = self._create_context()
        self._start_context(context)

        if self.use_forward_headers:
            from granian.utils.proxies import wrap_asgi_with_proxy_headers

            app = wrap_asgi_with_proxy_headers(app, trusted_hosts="*")

        return GranianEmbeddedServer(app, self, context)
