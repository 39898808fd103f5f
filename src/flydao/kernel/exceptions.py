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
"""Unified exception hierarchy for flydao.

All flydao exceptions inherit from FlyDaoException so callers can catch
one base type. Failures raised by SQLAlchemy itself are never wrapped:
they reach the caller unchanged.

Categories:
- BusinessException: misuse of the data access API
- InfrastructureException: missing or broken database wiring
"""

from __future__ import annotations


# =============================================================================
# Base Exception
# =============================================================================


class FlyDaoException(Exception):
    """Base exception for all flydao errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "DAO_UNSUPPORTED").
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
# Business Exceptions
# =============================================================================


class BusinessException(FlyDaoException):
    """Invalid use of the data access API."""


class UnsupportedOperationException(BusinessException):
    """The operation is not supported for this entity type or query kind."""


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(FlyDaoException):
    """Database wiring failures: missing services, bad configuration."""


class ServiceNotFoundException(InfrastructureException):
    """No database service is registered under the requested id."""


class ConfigurationException(InfrastructureException):
    """Configuration could not be bound or is inconsistent."""


def unsupported_if(condition: bool, message: str, **context: object) -> None:
    """Raise :class:`UnsupportedOperationException` when *condition* holds."""
    if condition:
        raise UnsupportedOperationException(message, code="DAO_UNSUPPORTED", context=dict(context))
