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
"""Projection of ``server.granian.*`` onto :class:`GranianServerFactory`."""

from __future__ import annotations

from flyserve.config.properties.server import ServerProperties
from flyserve.server.adapters.granian.factory import GranianServerFactory
from flyserve.server.adapters.native import native_access_log


class GranianFactoryCustomizer:
    factory_type = GranianServerFactory

    def customize(
        self,
        factory: GranianServerFactory,
        properties: ServerProperties,
        use_forward_headers: bool,
    ) -> None:
        granian_props = properties.granian
        access_log = native_access_log(granian_props.accesslog)
        if access_log is not None:
            factory.access_log = access_log
        if granian_props.runtime_threads is not None:
            factory.runtime_threads = granian_props.runtime_threads
        if granian_props.runtime_mode is not None:
            factory.runtime_mode = granian_props.runtime_mode
        if granian_props.backpressure is not None:
            factory.backpressure = granian_props.backpressure
        if granian_props.respawn_failed_workers is not None:
            factory.respawn_failed_workers = granian_props.respawn_failed_workers

        factory.use_forward_headers = use_forward_headers
        if properties.session.store_dir is not None:
            factory.session_store_dir = properties.session.store_dir
        factory.persist_session = properties.session.persistent
