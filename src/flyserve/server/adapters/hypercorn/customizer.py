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
"""Projection of ``server.hypercorn.*`` onto :class:`HypercornServerFactory`."""

from __future__ import annotations

from flyserve.config.properties.server import ServerProperties
from flyserve.server.adapters.hypercorn.factory import HypercornServerFactory
from flyserve.server.adapters.native import native_access_log


class HypercornFactoryCustomizer:
    factory_type = HypercornServerFactory

    def customize(
        self,
        factory: HypercornServerFactory,
        properties: ServerProperties,
        use_forward_headers: bool,
    ) -> None:
        hypercorn_props = properties.hypercorn
        access_log = native_access_log(hypercorn_props.accesslog)
        if access_log is not None:
            factory.access_log = access_log
        if hypercorn_props.workers is not None:
            factory.workers = hypercorn_props.workers

        factory.use_forward_headers = use_forward_headers
        if properties.session.store_dir is not None:
            factory.session_store_dir = properties.session.store_dir
        factory.persist_session = properties.session.persistent
