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
"""Query descriptor executed against a SQLAlchemy session.

A :class:`DaoQuery` binds a :class:`~flydao.db.sqlalchemy.sql.QueryKind`,
an entity class, a filter expression, optional explicit columns, and
positional parameters (1-based). The SQLAlchemy statement is built at
execution time.

Usage::

    q = DaoQuery(session, User, QueryKind.FIND, "status, age >=")
    q.set_parameter(1, "active").set_parameter(2, 18)
    adults = list(q.order_by("-age").fetch())

For UPDATE descriptors the first ``len(columns)`` positions hold the SET
values and the filter expression consumes the positions after them::

    q = DaoQuery(session, User, QueryKind.UPDATE, "id", columns=["name"])
    q.bind("Alice", 42).execute_update()   # UPDATE users SET name=? WHERE id=?
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql.expression import Executable

from flydao.db.sqlalchemy.sql import (
    OrderClause,
    QueryKind,
    build_where,
    column,
    parse_expression,
    parse_order,
)
from flydao.kernel.exceptions import unsupported_if

T = TypeVar("T")


class DaoQuery(Generic[T]):
    """Parameterised FIND / COUNT / UPDATE / DELETE query over one entity type."""

    def __init__(
        self,
        session: Session,
        model: type[T],
        kind: QueryKind = QueryKind.FIND,
        expression: str = "",
        columns: Sequence[str] | None = None,
        *,
        parameters: dict[int, Any] | None = None,
        orders: Sequence[OrderClause] = (),
    ) -> None:
        if kind is QueryKind.UPDATE and not columns:
            raise ValueError("UPDATE queries require at least one target column")
        self._session = session
        self._model = model
        self._kind = kind
        self._expression = expression or ""
        self._parsed = parse_expression(self._expression)
        self._columns: tuple[str, ...] = tuple(columns or ())
        self._parameters: dict[int, Any] = dict(parameters or {})
        self._orders: tuple[OrderClause, ...] = tuple(orders)

    def __repr__(self) -> str:
        return (
            f"DaoQuery(model={self._model.__name__}, kind={self._kind.name}, "
            f"expression={self._expression!r}, columns={list(self._columns)}, "
            f"parameters={self._parameters})"
        )

    def __str__(self) -> str:
        return str(self.statement())

    @property
    def model(self) -> type[T]:
        return self._model

    @property
    def kind(self) -> QueryKind:
        return self._kind

    @property
    def expression(self) -> str:
        return self._expression

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def parameters(self) -> dict[int, Any]:
        return dict(self._parameters)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def set_parameter(self, position: int, value: Any) -> DaoQuery[T]:
        """Bind *value* at the 1-based *position*."""
        if position < 1:
            raise ValueError(f"Parameter positions start at 1, got {position}")
        self._parameters[position] = value
        return self

    def bind(self, *values: Any) -> DaoQuery[T]:
        """Bind *values* to positions ``1..len(values)`` in order."""
        for i, value in enumerate(values, start=1):
            self.set_parameter(i, value)
        return self

    def order_by(self, *columns: str) -> DaoQuery[T]:
        """Return a copy ordered additionally by *columns*.

        Ascending unless prefixed with ``-`` or suffixed with ``desc``.
        """
        orders = self._orders + tuple(parse_order(c) for c in columns)
        return self._copy(orders=orders)

    def as_delete(self) -> DaoQuery[T]:
        """Return an equivalent DELETE descriptor with the same filter and parameters.

        Field-term filters of an UPDATE move down past its SET values; raw
        ``?N`` placeholders are absolute and keep their positions.
        """
        shift = self._kind is QueryKind.UPDATE and self._parsed.raw is None
        offset = len(self._columns) if shift else 0
        parameters = {p - offset: v for p, v in self._parameters.items() if p > offset}
        return DaoQuery(self._session, self._model, QueryKind.DELETE, self._expression, parameters=parameters)

    def _copy(self, **changes: Any) -> DaoQuery[T]:
        return DaoQuery(
            self._session,
            self._model,
            changes.get("kind", self._kind),
            changes.get("expression", self._expression),
            changes.get("columns", self._columns),
            parameters=changes.get("parameters", self._parameters),
            orders=changes.get("orders", self._orders),
        )

    def statement(self) -> Executable:
        """Build the SQLAlchemy statement this descriptor describes."""
        where_start = len(self._columns) + 1 if self._kind is QueryKind.UPDATE else 1
        where = build_where(self._model, self._parsed, self._parameters, where_start)

        if self._kind is QueryKind.UPDATE:
            values = {column(self._model, name): self._parameters.get(i) for i, name in enumerate(self._columns, 1)}
            missing = [i for i in range(1, len(self._columns) + 1) if i not in self._parameters]
            if missing:
                raise ValueError(f"No value bound for update column position(s) {missing}")
            stmt: Any = update(self._model).values(values)
        elif self._kind is QueryKind.DELETE:
            stmt = delete(self._model)
        elif self._kind is QueryKind.COUNT:
            stmt = select(func.count()).select_from(self._model)
        else:
            targets = [column(self._model, name) for name in self._columns] or [self._model]
            stmt = select(*targets)
            for order in self._orders:
                col = column(self._model, order.field_name)
                stmt = stmt.order_by(col.desc() if order.descending else col.asc())

        if where is not None:
            stmt = stmt.where(where)
        return stmt

    def _count_statement(self) -> Executable:
        where = build_where(self._model, self._parsed, self._parameters)
        stmt = select(func.count()).select_from(self._model)
        return stmt.where(where) if where is not None else stmt

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _require_read(self, operation: str) -> None:
        unsupported_if(
            self._kind is not QueryKind.FIND,
            f"{operation}() requires a FIND query, got {self._kind.name}",
            kind=self._kind.name,
        )

    def first(self) -> T | None:
        """Execute and return the first result, or ``None`` when nothing matches."""
        self._require_read("first")
        stmt = self.statement().limit(1)  # type: ignore[attr-defined]
        if self._columns:
            return self._session.execute(stmt).first()  # type: ignore[return-value]
        return self._session.scalars(stmt).first()

    def fetch(self) -> Iterable[T]:
        """Execute and return a lazy, single-pass iterable of results.

        Entity queries yield instances; queries with explicit columns yield rows.
        """
        self._require_read("fetch")
        if self._columns:
            return self._session.execute(self.statement())  # type: ignore[return-value]
        return self._session.scalars(self.statement())

    def count(self) -> int:
        """Execute as a counting query over the same filter."""
        unsupported_if(
            self._kind not in (QueryKind.FIND, QueryKind.COUNT),
            f"count() requires a FIND or COUNT query, got {self._kind.name}",
            kind=self._kind.name,
        )
        return int(self._session.execute(self._count_statement()).scalar_one())

    def execute_update(self) -> int:
        """Execute an UPDATE or DELETE descriptor as a bulk mutation.

        Returns:
            The number of affected rows reported by the driver.
        """
        unsupported_if(
            self._kind not in (QueryKind.UPDATE, QueryKind.DELETE),
            f"execute_update() requires an UPDATE or DELETE query, got {self._kind.name}",
            kind=self._kind.name,
        )
        result = self._session.execute(self.statement())
        return int(result.rowcount or 0)  # type: ignore[attr-defined]
