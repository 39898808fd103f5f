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
"""Service locator mapping logical database ids to database services."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from flydao.core.config import Config
from flydao.db.model import DEFAULT
from flydao.kernel.exceptions import ServiceNotFoundException
from flydao.kernel.lifecycle import Lifecycle

if TYPE_CHECKING:
    from flydao.db.sqlalchemy.service import SqlAlchemyService

_logger = logging.getLogger(__name__)


class DbServiceManager:
    """Registry of database services keyed by db id.

    Services are started in registration order and stopped in reverse.
    """

    DEFAULT = DEFAULT

    def __init__(self) -> None:
        self._services: dict[str, Any] = {}

    @classmethod
    def from_config(cls, config: Config) -> DbServiceManager:
        """Build one service for the default db and one per ``flydao.data.databases`` entry."""
        from flydao.config.properties.data import DataProperties
        from flydao.db.sqlalchemy.service import SqlAlchemyService

        props = config.bind(DataProperties)
        manager = cls()
        manager.register(DEFAULT, SqlAlchemyService.from_properties(props.for_database(DEFAULT), DEFAULT))
        for db_id in props.databases:
            manager.register(db_id, SqlAlchemyService.from_properties(props.for_database(db_id), db_id))
        return manager

    def register(self, db_id: str, service: SqlAlchemyService) -> None:
        self._services[db_id] = service
        _logger.debug("Registered db service '%s' (%s)", db_id, type(service).__name__)

    def db_service(self, db_id: str = DEFAULT) -> SqlAlchemyService:
        """Return the service registered for *db_id*.

        Raises:
            ServiceNotFoundException: If nothing is registered under *db_id*.
        """
        try:
            return self._services[db_id]
        except KeyError:
            raise ServiceNotFoundException(
                f"No db service registered for '{db_id}'",
                code="DB_SERVICE_NOT_FOUND",
                context={"db_id": db_id, "known": sorted(self._services)},
            ) from None

    def has_service(self, db_id: str) -> bool:
        return db_id in self._services

    @property
    def db_ids(self) -> list[str]:
        return list(self._services)

    def start(self) -> None:
        for service in self._services.values():
            if isinstance(service, Lifecycle):
                service.start()

    def stop(self) -> None:
        for service in reversed(list(self._services.values())):
            if isinstance(service, Lifecycle):
                service.stop()


_manager: DbServiceManager | None = None
_manager_lock = threading.Lock()


def db_service_manager() -> DbServiceManager:
    """Return the process-wide manager, creating an empty one on first use."""
    global _manager
    if _manager is None:
        with _manager_lock:
            if _manager is None:
                _manager = DbServiceManager()
    return _manager


def set_db_service_manager(manager: DbServiceManager | None) -> None:
    """Install *manager* as the process-wide manager (``None`` resets it)."""
    global _manager
    with _manager_lock:
        _manager = manager
