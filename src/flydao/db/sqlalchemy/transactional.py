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
"""Transaction demarcation around a service's thread-bound session.

Dao operations only flush; committing is the caller's job, either with the
:func:`transaction` context manager or the :func:`transactional` decorator::

    @transactional()
    def register(user: User) -> None:
        user_dao.save(user)
"""

from __future__ import annotations

import enum
import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from flydao.db.manager import DbServiceManager, db_service_manager
from flydao.db.model import DEFAULT
from flydao.db.sqlalchemy.service import SqlAlchemyService

F = TypeVar("F", bound=Callable[..., Any])

_active_services: ContextVar[frozenset[str]] = ContextVar("_active_services", default=frozenset())


class Propagation(enum.Enum):
    """Transaction propagation behaviour."""

    REQUIRED = "REQUIRED"
    SUPPORTS = "SUPPORTS"
    MANDATORY = "MANDATORY"
    NEVER = "NEVER"


def in_transaction(service: SqlAlchemyService) -> bool:
    """Whether a :func:`transaction` block for *service* is active in this context."""
    return service.db_id in _active_services.get()


@contextmanager
def transaction(service: SqlAlchemyService) -> Iterator[Session]:
    """Run the block in a unit of work on the service's current session.

    Commits on normal exit; rolls back and re-raises on any exception. The
    session is closed and unbound from the thread afterwards. Nested blocks
    for the same service join the outer one.
    """
    if in_transaction(service):
        yield service.session()
        return

    session = service.session()
    token = _active_services.set(_active_services.get() | {service.db_id})
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
    finally:
        _active_services.reset(token)
        service.remove_session()


def transactional(
    db_id: str = DEFAULT,
    propagation: Propagation = Propagation.REQUIRED,
    manager: DbServiceManager | None = None,
) -> Callable[[F], F]:
    """Declarative transaction demarcation for the database *db_id*.

    The service is looked up on each call, from *manager* or the
    process-wide manager.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            service = (manager or db_service_manager()).db_service(db_id)
            active = in_transaction(service)

            if propagation is Propagation.NEVER:
                if active:
                    raise RuntimeError("Propagation.NEVER: active transaction exists")
                return func(*args, **kwargs)

            if propagation is Propagation.MANDATORY:
                if not active:
                    raise RuntimeError("Propagation.MANDATORY: no active transaction")
                return func(*args, **kwargs)

            if propagation is Propagation.SUPPORTS:
                return func(*args, **kwargs)

            with transaction(service):
                return func(*args, **kwargs)

        wrapper.__flydao_transactional__ = True  # type: ignore[attr-defined]
        wrapper.__flydao_propagation__ = propagation  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
