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
"""flyserve: configuration-driven customization of embedded ASGI servers."""

from flyserve.config.properties.server import ServerProperties
from flyserve.core.config import Config, config_properties
from flyserve.server.bootstrap import bootstrap_server
from flyserve.server.customizer import ServerFactoryCustomizer
from flyserve.server.forwarded import detect_forward_headers

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ServerFactoryCustomizer",
    "ServerProperties",
    "__version__",
    "bootstrap_server",
    "config_properties",
    "detect_forward_headers",
]
