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
"""Declarative base, audit column markers, and the default base entity.

A Dao finds the creation and last-modification columns of an entity by
looking for columns built with :func:`created_column` /
:func:`last_modified_column`, or for the class attributes
``__created_column__`` / ``__last_modified_column__`` naming them::

    class Article(Base):
        __tablename__ = "articles"

        id: Mapped[int] = mapped_column(primary_key=True)
        published: Mapped[datetime] = created_column()
        edited: Mapped[datetime] = last_modified_column()
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

MARKER_KEY = "flydao"
CREATED = "created"
LAST_MODIFIED = "last_modified"

_CLASS_ATTRS = {CREATED: "__created_column__", LAST_MODIFIED: "__last_modified_column__"}


def utcnow() -> datetime:
    """Timezone-aware current UTC time, the default audit clock."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for flydao entities."""


def created_column(**kwargs: Any) -> Any:
    """A timezone-aware timestamp column marked as the creation column."""
    kwargs.setdefault("default", utcnow)
    info = {**kwargs.pop("info", {}), MARKER_KEY: CREATED}
    return mapped_column(DateTime(timezone=True), info=info, **kwargs)


def last_modified_column(**kwargs: Any) -> Any:
    """A timezone-aware timestamp column marked as the last-modification column."""
    kwargs.setdefault("default", utcnow)
    kwargs.setdefault("onupdate", utcnow)
    info = {**kwargs.pop("info", {}), MARKER_KEY: LAST_MODIFIED}
    return mapped_column(DateTime(timezone=True), info=info, **kwargs)


class BaseEntity(Base):
    """Base entity with a UUID primary key and audit timestamps.

    Implements the :class:`~flydao.db.model.Model` protocol.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = created_column()
    updated_at: Mapped[datetime] = last_modified_column()

    def _id(self) -> uuid.UUID:
        return self.id


def marked_attribute(model_type: type, marker: str) -> str | None:
    """Name of the mapped attribute carrying *marker* on *model_type*.

    A ``__created_column__`` / ``__last_modified_column__`` class attribute
    wins over column markers.
    """
    declared = getattr(model_type, _CLASS_ATTRS[marker], None)
    if declared is not None:
        return str(declared)
    for prop in inspect(model_type).column_attrs:
        if any(col.info.get(MARKER_KEY) == marker for col in prop.columns):
            return prop.key
    return None
