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
"""Unified exception hierarchy for flyserve.

All exceptions inherit from FlyServeException, enabling unified
error handling across modules.

Categories:
- ConfigurationException: Property binding and validation errors
- ContextStateException: Server context lifecycle violations
- InfrastructureException: Backend runtime and filesystem failures
"""

from __future__ import annotations

# =============================================================================
# Base Exception
# =============================================================================


class FlyServeException(Exception):
    """Base exception for all flyserve errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CONFIG_001").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationException(FlyServeException, ValueError):
    """A configuration value could not be bound to its declared type."""


class ContextStateException(FlyServeException):
    """Operation is not allowed in the current server context state."""


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(FlyServeException):
    """Infrastructure failures: backend libraries, filesystem, sockets."""


class BackendUnavailableException(InfrastructureException):
    """The requested server backend is not installed."""
