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
"""Server context: the request-handling context a built server exposes.

A context exists only once a factory builds its server. Settings that live on
the context (session cookie attributes, tracking modes) are therefore written
by :class:`ServerContextInitializer` callbacks registered on the factory ahead
of time, and become read-only once the context has started.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from flyserve.kernel.exceptions import ContextStateException
from flyserve.server.types import SessionTrackingMode

DEFAULT_TRACKING_MODES = frozenset({SessionTrackingMode.COOKIE, SessionTrackingMode.URL})


@dataclass
class SessionCookieConfig:
    """Attributes of the session cookie issued by a context."""

    name: str = "SESSION"
    domain: str | None = None
    path: str | None = None
    comment: str | None = None
    http_only: bool = False
    secure: bool = False
    max_age: int | None = None
    _locked: bool = field(default=False, init=False, repr=False, compare=False)

    def __setattr__(self, key: str, value: Any) -> None:
        if getattr(self, "_locked", False):
            raise ContextStateException(
                f"Cannot set session cookie '{key}': the server context has already started",
                code="CONTEXT_STARTED",
            )
        super().__setattr__(key, value)

    def lock(self) -> None:
        object.__setattr__(self, "_locked", True)

    def as_cookie_kwargs(self, value: str, default_path: str = "/") -> dict[str, Any]:
        """Keyword arguments for ``starlette.responses.Response.set_cookie``."""
        return {
            "key": self.name,
            "value": value,
            "max_age": self.max_age,
            "path": self.path or default_path,
            "domain": self.domain,
            "secure": self.secure,
            "httponly": self.http_only,
        }


@runtime_checkable
class ServerContextInitializer(Protocol):
    """Callback fired exactly once when a server context starts."""

    def on_startup(self, context: ServerContext) -> None: ...


@runtime_checkable
class ServerContextCustomizer(Protocol):
    """Hook applied to every context a factory creates, before initializers run."""

    def customize(self, context: ServerContext) -> None: ...


class ServerContext:
    """Request-handling context of one built server."""

    def __init__(
        self,
        display_name: str | None = None,
        context_path: str = "",
        session_timeout: int | None = None,
        session_store_dir: Path | None = None,
    ) -> None:
        self.display_name = display_name
        self.context_path = context_path
        self.session_timeout = session_timeout
        self.session_store_dir = session_store_dir
        self.session_cookie_config = SessionCookieConfig()
        self.mapper_context_root_redirect_enabled = True
        self.attributes: dict[str, Any] = {}
        self._session_tracking_modes: frozenset[SessionTrackingMode] = DEFAULT_TRACKING_MODES
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    @property
    def session_tracking_modes(self) -> frozenset[SessionTrackingMode]:
        return self._session_tracking_modes

    def set_session_tracking_modes(self, modes: Iterable[SessionTrackingMode]) -> None:
        """Replace the complete set of tracking modes."""
        if self._started:
            raise ContextStateException(
                "Cannot change session tracking modes: the server context has already started",
                code="CONTEXT_STARTED",
            )
        self._session_tracking_modes = frozenset(modes)

    def start(self, initializers: Iterable[ServerContextInitializer]) -> None:
        """Run every initializer once, in order, then freeze session settings."""
        if self._started:
            raise ContextStateException("Server context has already been started", code="CONTEXT_STARTED")
        for initializer in initializers:
            initializer.on_startup(self)
        self._started = True
        self.session_cookie_config.lock()
