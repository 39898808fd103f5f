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
"""SQLAlchemy database service: engine, thread-bound sessions, and mapping metadata.

One :class:`SqlAlchemyService` exists per logical database. It owns the
engine, hands out the session bound to the calling thread (the unit of
work every Dao call runs in), and answers metadata questions about mapped
entity classes: entity name, primary-key attribute, and the attributes
marked as creation / last-modification timestamps.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from operator import attrgetter
from typing import Any

from sqlalchemy import Engine, MetaData, create_engine, inspect
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Mapper, Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from flydao.config.properties.data import DataProperties
from flydao.db.model import DEFAULT
from flydao.db.sqlalchemy.entity import CREATED, LAST_MODIFIED, Base, marked_attribute

_logger = logging.getLogger(__name__)

_VALID_DDL_MODES = {"none", "create", "create-drop"}


@dataclass(frozen=True)
class EntityMetadata:
    """Mapping facts about one entity class, resolved once per Dao."""

    entity_name: str
    table_name: str | None
    id_column: str | None
    created_column: str | None
    last_modified_column: str | None
    id_field: Callable[[Any], Any] | None


class SqlAlchemyService:
    """Per-database handle over a SQLAlchemy engine.

    Sessions come from a :class:`~sqlalchemy.orm.scoped_session`, so every
    thread sees its own session until :meth:`remove_session` is called.

    Args:
        engine: The engine all sessions bind to.
        db_id: Logical database id this service is registered under.
        batch_size: Entities persisted between flush-and-clear cycles in
            bulk saves.
        ddl_auto: Schema strategy applied by :meth:`start` (``none``,
            ``create`` or ``create-drop``).
        metadata: Table metadata used for DDL (defaults to ``Base.metadata``).
    """

    def __init__(
        self,
        engine: Engine,
        db_id: str = DEFAULT,
        *,
        batch_size: int = 20,
        ddl_auto: str = "none",
        metadata: MetaData | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._engine = engine
        self._db_id = db_id
        self._batch_size = batch_size
        self._ddl_auto = ddl_auto if ddl_auto in _VALID_DDL_MODES else "none"
        self._metadata = metadata if metadata is not None else Base.metadata
        self._session_factory = sessionmaker(engine, expire_on_commit=False)
        self._sessions = scoped_session(self._session_factory)

    @classmethod
    def from_properties(cls, props: DataProperties, db_id: str = DEFAULT) -> SqlAlchemyService:
        """Create a service and its engine from bound ``flydao.data`` properties."""
        url = make_url(props.url)
        engine_kwargs: dict[str, Any] = {"echo": props.echo}
        if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
            # an in-memory database lives and dies with its single connection
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        engine = create_engine(url, **engine_kwargs)
        return cls(engine, db_id, batch_size=props.batch_size, ddl_auto=props.ddl_auto)

    @property
    def db_id(self) -> str:
        return self._db_id

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def batch_size(self) -> int:
        return self._batch_size

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def session(self) -> Session:
        """Return the session bound to the calling thread, creating it if needed."""
        return self._sessions()

    def new_session(self) -> Session:
        """Return a fresh session not bound to any thread."""
        return self._session_factory()

    def remove_session(self) -> None:
        """Close and forget the calling thread's session."""
        self._sessions.remove()

    # ------------------------------------------------------------------
    # Mapping metadata
    # ------------------------------------------------------------------

    @staticmethod
    def _mapper(model_type: type) -> Mapper[Any]:
        return inspect(model_type)

    def entity_name(self, model_type: type) -> str:
        return self._mapper(model_type).class_.__name__

    def table_name(self, model_type: type) -> str | None:
        return getattr(model_type, "__tablename__", None)

    def id_column(self, model_type: type) -> str | None:
        """Attribute name of the primary key, or ``None`` for composite keys."""
        mapper = self._mapper(model_type)
        if len(mapper.primary_key) != 1:
            return None
        return mapper.get_property_by_column(mapper.primary_key[0]).key

    def created_column(self, model_type: type) -> str | None:
        return marked_attribute(model_type, CREATED)

    def last_modified_column(self, model_type: type) -> str | None:
        return marked_attribute(model_type, LAST_MODIFIED)

    def id_field(self, model_type: type) -> Callable[[Any], Any] | None:
        """Accessor reading the primary-key attribute from an instance."""
        id_column = self.id_column(model_type)
        return attrgetter(id_column) if id_column is not None else None

    def entity_metadata(self, model_type: type) -> EntityMetadata:
        return EntityMetadata(
            entity_name=self.entity_name(model_type),
            table_name=self.table_name(model_type),
            id_column=self.id_column(model_type),
            created_column=self.created_column(model_type),
            last_modified_column=self.last_modified_column(model_type),
            id_field=self.id_field(model_type),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Apply the ``ddl_auto`` schema strategy."""
        if self._ddl_auto in ("create", "create-drop"):
            _logger.info("Initializing schema for db '%s' (ddl-auto=%s)", self._db_id, self._ddl_auto)
            self._metadata.create_all(self._engine)
            _logger.info("Schema for db '%s' initialized (%d tables)", self._db_id, len(self._metadata.tables))

    def stop(self) -> None:
        """Drop the schema when ``create-drop``, close sessions, and dispose the pool."""
        self._sessions.remove()
        if self._ddl_auto == "create-drop":
            _logger.info("Dropping schema for db '%s' (ddl-auto=create-drop)", self._db_id)
            self._metadata.drop_all(self._engine)
        self._engine.dispose()
