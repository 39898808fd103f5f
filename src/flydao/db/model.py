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
"""Model-level markers: the self-identifying protocol and the ``@db`` binding."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

DEFAULT = "default"

_DB_ATTR = "__flydao_db__"


@runtime_checkable
class Model(Protocol):
    """An entity that knows its own identifier.

    ``Dao.get_id`` prefers this over reading the mapped primary-key attribute.
    """

    def _id(self) -> Any: ...


def db(db_id: str) -> Callable[[type[T]], type[T]]:
    """Bind an entity class to a logical database.

    Usage::

        @db("reporting")
        class Event(Base):
            __tablename__ = "events"
            ...
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _DB_ATTR, db_id)
        return cls

    return decorator


def db_id_of(model_type: type) -> str:
    """Return the database id declared on *model_type*, or :data:`DEFAULT`."""
    return getattr(model_type, _DB_ATTR, DEFAULT)
