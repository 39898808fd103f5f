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
"""Outbound ports: the provider-neutral Dao and query contracts."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")
ID = TypeVar("ID")


@runtime_checkable
class QueryPort(Protocol[T]):
    """A parameterised query ready for execution."""

    def order_by(self, *columns: str) -> QueryPort[T]: ...

    def first(self) -> T | None: ...

    def fetch(self) -> Iterable[T]: ...

    def count(self) -> int: ...

    def execute_update(self) -> int: ...

    def as_delete(self) -> QueryPort[T]: ...


@runtime_checkable
class Dao(Protocol[T, ID]):
    """Identifier-typed CRUD and expression-query operations over one entity type."""

    def find_by_id(self, id: ID) -> T | None: ...

    def find_latest(self) -> T | None: ...

    def find_last_modified(self) -> T | None: ...

    def find_by(self, expression: str, *values: Any) -> Iterable[T]: ...

    def find_one_by(self, expression: str, *values: Any) -> T | None: ...

    def find_by_id_list(self, ids: Collection[ID]) -> Iterable[T]: ...

    def reload(self, entity: T) -> T: ...

    def get_id(self, entity: T) -> ID | None: ...

    def count_by(self, expression: str, *values: Any) -> int: ...

    def save(self, entity: T, field_list: str | None = None, *values: Any) -> T: ...

    def save_all(self, entities: Iterable[T]) -> list[T]: ...

    def delete(self, target: Any) -> None: ...

    def delete_by_id(self, id: ID) -> None: ...

    def delete_by(self, expression: str, *values: Any) -> None: ...

    def delete_all(self) -> None: ...

    def drop(self) -> None: ...

    def q(self, expression: Any = "", *values: Any) -> QueryPort[T]: ...
