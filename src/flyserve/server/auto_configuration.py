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
"""Server backend auto-configuration."""

from __future__ import annotations

import importlib

from flyserve.kernel.exceptions import BackendUnavailableException, ConfigurationException
from flyserve.server.factory import AbstractServerFactory


class ServerAutoConfiguration:
    """Selects the server factory for the configured ``server.type``.

    Priority for ``auto``: Granian (highest) -> Uvicorn -> Hypercorn (lowest).
    """

    PRIORITY = ("granian", "uvicorn", "hypercorn")

    @staticmethod
    def is_available(module_name: str) -> bool:
        """Check if a Python package is importable."""
        try:
            importlib.import_module(module_name)
            return True
        except ImportError:
            return False

    def server_factory(self, server_type: str = "auto") -> AbstractServerFactory:
        server_type = server_type.lower()
        if server_type == "auto":
            for candidate in self.PRIORITY:
                if self.is_available(candidate):
                    return self._create(candidate)
            raise BackendUnavailableException(
                "No supported ASGI server is installed (granian, uvicorn or hypercorn)",
                code="SERVER_UNAVAILABLE",
            )

        if server_type not in self.PRIORITY:
            raise ConfigurationException(
                f"Unknown server type '{server_type}'; expected auto, {', '.join(self.PRIORITY)}",
                code="SERVER_TYPE",
                context={"property": "server.type", "value": server_type},
            )
        if not self.is_available(server_type):
            raise BackendUnavailableException(
                f"Server type '{server_type}' is configured but the package is not installed",
                code="SERVER_UNAVAILABLE",
                context={"server": server_type},
            )
        return self._create(server_type)

    @staticmethod
    def _create(server_type: str) -> AbstractServerFactory:
        if server_type == "granian":
            from flyserve.server.adapters.granian.factory import GranianServerFactory

            return GranianServerFactory()
        if server_type == "uvicorn":
            from flyserve.server.adapters.uvicorn.factory import UvicornServerFactory

            return UvicornServerFactory()
        from flyserve.server.adapters.hypercorn.factory import HypercornServerFactory

        return HypercornServerFactory()
