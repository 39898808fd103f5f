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
"""Generic Dao built on the SQLAlchemy 2.0 ORM."""

from __future__ import annotations

import logging
import threading
from collections.abc import Collection, Iterable
from typing import Any, Generic, TypeVar, cast, get_args, get_origin

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from flydao.db.manager import DbServiceManager, db_service_manager
from flydao.db.model import Model, db_id_of
from flydao.db.sqlalchemy.query import DaoQuery
from flydao.db.sqlalchemy.service import EntityMetadata, SqlAlchemyService
from flydao.db.sqlalchemy.sql import QueryKind, split_fields
from flydao.kernel.exceptions import unsupported_if

T = TypeVar("T")
ID = TypeVar("ID")

_logger = logging.getLogger(__name__)


class SqlAlchemyDao(Generic[T, ID]):
    """Identifier-typed CRUD and expression queries for one mapped entity type.

    The database service is resolved on first use from the
    :class:`~flydao.db.manager.DbServiceManager`, using the entity's
    ``@db`` id, unless one is passed to the constructor. Every operation
    runs on the service's session for the calling thread and flushes where
    the store must observe the change; committing is left to the caller
    (see :mod:`flydao.db.sqlalchemy.transactional`).

    Type Parameters:
        T: The entity type (any SQLAlchemy mapped class).
        ID: The primary key type.

    Usage::

        class UserDao(SqlAlchemyDao[User, int]):
            pass

        dao = UserDao()
        dao.save(User(name="Alice"))
        adults = list(dao.find_by("age >=", 18))
    """

    _entity_type: type | None = None
    _id_type: type | None = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", []):
            if get_origin(base) is SqlAlchemyDao:
                args = get_args(base)
                if args and not isinstance(args[0], TypeVar):
                    cls._entity_type = args[0]
                if len(args) > 1 and not isinstance(args[1], TypeVar):
                    cls._id_type = args[1]
                break

    def __init__(
        self,
        model: type[T] | None = None,
        service: SqlAlchemyService | None = None,
        *,
        id_type: type | None = None,
        manager: DbServiceManager | None = None,
    ) -> None:
        resolved = model or getattr(type(self), "_entity_type", None)
        if resolved is None:
            raise TypeError(
                f"{type(self).__name__} requires either SqlAlchemyDao[Entity, ID] declaration or explicit model argument"
            )
        self._model: type[T] = cast(type[T], resolved)
        self._id_type = id_type or getattr(type(self), "_id_type", None)
        self._manager = manager
        self._lock = threading.Lock()
        self._metadata: EntityMetadata | None = None
        self._service: SqlAlchemyService | None = None
        if service is not None:
            self._bind(service)

    @property
    def model_type(self) -> type[T]:
        return self._model

    @property
    def id_type(self) -> type | None:
        return self._id_type

    # ------------------------------------------------------------------
    # Service binding
    # ------------------------------------------------------------------

    @property
    def service(self) -> SqlAlchemyService:
        """The database service for this entity type, resolved once."""
        return self._resolve()

    @property
    def metadata(self) -> EntityMetadata:
        self._resolve()
        return cast(EntityMetadata, self._metadata)

    def _resolve(self) -> SqlAlchemyService:
        service = self._service
        if service is not None:
            return service
        with self._lock:
            if self._service is None:
                manager = self._manager or db_service_manager()
                db_id = db_id_of(self._model)
                self._bind(manager.db_service(db_id))
                _logger.debug("Resolved db service '%s' for %s", db_id, self._model.__name__)
        return cast(SqlAlchemyService, self._service)

    def _bind(self, service: SqlAlchemyService) -> None:
        # metadata first: readers that see the service must see its metadata
        self._metadata = service.entity_metadata(self._model)
        self._service = service

    def _session(self) -> Session:
        return self.service.session()

    def _require_id_column(self, operation: str) -> str:
        id_column = self.metadata.id_column
        unsupported_if(
            id_column is None,
            f"{operation}() requires a single-column id on {self._model.__name__}",
            entity=self._model.__name__,
        )
        return cast(str, id_column)

    # ------------------------------------------------------------------
    # Finders
    # ------------------------------------------------------------------

    def find_by_id(self, id: ID) -> T | None:
        return self._session().get(self._model, id)

    def find_latest(self) -> T | None:
        """Return the entity with the greatest creation timestamp."""
        created = self.metadata.created_column
        unsupported_if(created is None, "no created column defined", entity=self._model.__name__)
        return self._newest_by(cast(str, created))

    def find_last_modified(self) -> T | None:
        """Return the entity with the greatest last-modification timestamp."""
        last_modified = self.metadata.last_modified_column
        unsupported_if(last_modified is None, "no last-modified column defined", entity=self._model.__name__)
        return self._newest_by(cast(str, last_modified))

    def _newest_by(self, column: str) -> T | None:
        # NULL timestamps never count as the newest; some backends sort them first
        q = self.q(f"{column} is not null").order_by(f"-{column}")
        id_column = self.metadata.id_column
        if id_column is not None and id_column != column:
            # ties on the timestamp resolve to the highest id
            q = q.order_by(f"-{id_column}")
        return q.first()

    def find_by(self, expression: str, *values: Any) -> Iterable[T]:
        return self.q(expression, *values).fetch()

    def find_one_by(self, expression: str, *values: Any) -> T | None:
        return self.q(expression, *values).first()

    def find_by_id_list(self, ids: Collection[ID]) -> Iterable[T]:
        if ids is None:
            raise ValueError("ids must not be None")
        id_column = self._require_id_column("find_by_id_list")
        ids = list(ids)
        if not ids:
            return []
        return self.q(f"{id_column} in", ids).fetch()

    def count_by(self, expression: str, *values: Any) -> int:
        return self.q(expression, *values).count()

    # ------------------------------------------------------------------
    # Entity state
    # ------------------------------------------------------------------

    def reload(self, entity: T) -> T:
        """Refresh *entity* in place from the database."""
        self._session().refresh(entity)
        return entity

    def get_id(self, entity: T) -> ID | None:
        if isinstance(entity, Model):
            return cast(ID, entity._id())
        id_field = self.metadata.id_field
        return None if id_field is None else id_field(entity)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, entity: T, field_list: str | None = None, *values: Any) -> T:
        """Insert or update *entity*.

        With *field_list*, only the named fields of the row matching the
        entity's id are updated to *values*, in order.
        """
        if field_list is not None:
            self._save_fields(entity, field_list, values)
            return entity

        session = self._session()
        if entity in session:
            entity = session.merge(entity)
        elif inspect(entity).detached:
            entity = session.merge(entity)
        else:
            session.add(entity)
        session.flush()
        return entity

    def _save_fields(self, entity: T, field_list: str, values: tuple[Any, ...]) -> None:
        id_column = self._require_id_column("save")
        fields = split_fields(field_list)
        if len(fields) != len(values):
            raise ValueError(f"{len(fields)} field(s) named in '{field_list}' but {len(values)} value(s) given")
        q = self.create_update_query(field_list, id_column, *values, self.get_id(entity))
        q.execute_update()
        self._session().flush()

    def save_all(self, entities: Iterable[T]) -> list[T]:
        """Add each entity, flushing and clearing the session every ``batch_size`` entities."""
        session = self._session()
        batch_size = self.service.batch_size
        saved: list[T] = []
        for count, entity in enumerate(entities, start=1):
            session.add(entity)
            if count % batch_size == 0:
                session.flush()
                session.expunge_all()
                _logger.debug("Flushed and cleared session after %d %s entities", count, self._model.__name__)
            saved.append(entity)
        return saved

    def delete(self, target: T | DaoQuery[T]) -> None:
        """Delete an entity, or every row matched by a query."""
        if isinstance(target, DaoQuery):
            target.as_delete().execute_update()
            self._session().flush()
            return
        session = self._session()
        session.delete(target)
        session.flush()

    def delete_by_id(self, id: ID) -> None:
        id_column = self._require_id_column("delete_by_id")
        self.delete(self.q(QueryKind.DELETE, id_column, id))

    def delete_by(self, expression: str, *values: Any) -> None:
        self.delete(self.q(QueryKind.DELETE, expression, *values))

    def delete_all(self) -> None:
        self.delete(self.q(QueryKind.DELETE))

    def drop(self) -> None:
        self.delete_all()

    # ------------------------------------------------------------------
    # Query builders
    # ------------------------------------------------------------------

    def q(self, expression: str | QueryKind = "", *values: Any) -> DaoQuery[T]:
        """Build a query, optionally of an explicit kind.

        ``q()`` and ``q("name", "Alice")`` build FIND queries;
        ``q(QueryKind.DELETE, "name", "Alice")`` builds a query of that kind.
        UPDATE queries must go through :meth:`create_update_query`.
        """
        kind = QueryKind.FIND
        if isinstance(expression, QueryKind):
            kind = expression
            expression, values = (values[0], values[1:]) if values else ("", ())
        unsupported_if(kind is QueryKind.UPDATE, "UPDATE not supported in q() API", entity=self._model.__name__)
        return self._query(kind, cast(str, expression), None, values)

    def create_query(self, expression: str = "", *values: Any) -> DaoQuery[T]:
        return self.q(expression, *values)

    def create_find_query(self, expression: str = "", *values: Any, fields: str | None = None) -> DaoQuery[T]:
        """FIND query; with *fields* it selects only those columns and yields rows."""
        columns = split_fields(fields) if fields else None
        return self._query(QueryKind.FIND, expression, columns, values)

    def create_count_query(self, expression: str = "", *values: Any) -> DaoQuery[T]:
        return self.q(QueryKind.COUNT, expression, *values)

    def create_delete_query(self, expression: str = "", *values: Any) -> DaoQuery[T]:
        return self.q(QueryKind.DELETE, expression, *values)

    def create_update_query(self, field_list: str, expression: str, *values: Any) -> DaoQuery[T]:
        """UPDATE query setting *field_list* (values first) on rows matching *expression*."""
        return self._query(QueryKind.UPDATE, expression, split_fields(field_list), values)

    def _query(
        self,
        kind: QueryKind,
        expression: str,
        columns: list[str] | None,
        values: tuple[Any, ...],
    ) -> DaoQuery[T]:
        return DaoQuery(self._session(), self._model, kind, expression, columns).bind(*values)
