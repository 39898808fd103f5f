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
"""Filter expression parser and SQLAlchemy clause builder.

Grammar
-------
An expression is either a list of field terms or raw SQL.

**Field terms** are joined by ``,`` or ``and`` (conjunction) and ``or``::

    "name"                    -> name = ?1
    "name, age >"             -> name = ?1 AND age > ?2
    "status in or age <="     -> status IN ?1 OR age <= ?2
    "status in" with "open"   -> status IN ("open")
    "score between"           -> score BETWEEN ?1 AND ?2
    "deleted_at is null"      -> deleted_at IS NULL        (no parameter)

**Operators** (after the field name): ``=`` (default), ``==``, ``!=``,
``<>``, ``<``, ``<=``, ``>``, ``>=``, ``like``, ``not like``, ``in``,
``not in``, ``between``, ``is null``, ``is not null``.

**Raw SQL** is any expression containing ``?N`` placeholders; each
placeholder binds the N-th positional parameter::

    "age > ?1 and name like ?2"

Each field term consumes the next positional parameter(s), starting at the
position the caller supplies (UPDATE statements reserve the leading
positions for their SET values). Raw placeholders always name absolute
positions.
"""

from __future__ import annotations

import enum
import functools
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, and_, bindparam, inspect, or_, text

COMMON_SEP = re.compile(r"[,;:\s]+")

_SPLIT_RE = re.compile(r"(,|\s+and\s+|\s+or\s+)", re.IGNORECASE)

_TERM_RE = re.compile(
    r"^(?P<field>[A-Za-z_]\w*)"
    r"(?:\s*(?P<sym>==|!=|<>|>=|<=|=|>|<)"
    r"|\s+(?P<word>is\s+not\s+null|is\s+null|not\s+like|not\s+in|between|like|in))?$",
    re.IGNORECASE,
)

_RAW_PARAM_RE = re.compile(r"\?(\d+)")

_SYMBOLS: dict[str, str] = {
    "=": "eq",
    "==": "eq",
    "!=": "ne",
    "<>": "ne",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
}

# number of positional parameters each operator consumes
_ARITY: dict[str, int] = {
    "eq": 1,
    "ne": 1,
    "gt": 1,
    "gte": 1,
    "lt": 1,
    "lte": 1,
    "like": 1,
    "not_like": 1,
    "in": 1,
    "not_in": 1,
    "between": 2,
    "is_null": 0,
    "is_not_null": 0,
}


class QueryKind(enum.Enum):
    """Shape of the statement a query descriptor builds."""

    FIND = "find"
    COUNT = "count"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Term:
    """One ``field [operator]`` predicate."""

    field_name: str
    operator: str = "eq"

    @property
    def arity(self) -> int:
        return _ARITY[self.operator]


@dataclass(frozen=True)
class ParsedExpression:
    """Result of parsing a filter expression."""

    terms: tuple[Term, ...] = ()
    connectors: tuple[str, ...] = ()
    raw: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.raw is None and not self.terms


@dataclass(frozen=True)
class OrderClause:
    field_name: str
    descending: bool = False


def split_fields(field_list: str) -> list[str]:
    """Split a field list such as ``"name, age"`` on the common separators."""
    return [f for f in COMMON_SEP.split(field_list.strip()) if f]


@functools.lru_cache(maxsize=256)
def parse_expression(expression: str) -> ParsedExpression:
    """Parse *expression* into terms or a raw SQL fragment.

    Raises:
        ValueError: If a term is malformed.
    """
    expression = (expression or "").strip()
    if not expression:
        return ParsedExpression()
    if _RAW_PARAM_RE.search(expression):
        return ParsedExpression(raw=expression)

    terms: list[Term] = []
    connectors: list[str] = []
    for part in _SPLIT_RE.split(expression):
        token = part.strip().lower()
        if token in (",", "and"):
            connectors.append("and")
        elif token == "or":
            connectors.append("or")
        else:
            terms.append(_parse_term(part.strip(), expression))
    return ParsedExpression(terms=tuple(terms), connectors=tuple(connectors))


def _parse_term(segment: str, expression: str) -> Term:
    match = _TERM_RE.match(segment)
    if match is None:
        raise ValueError(f"Invalid term '{segment}' in expression '{expression}'")
    if match.group("sym"):
        return Term(match.group("field"), _SYMBOLS[match.group("sym")])
    if match.group("word"):
        word = "_".join(match.group("word").lower().split())
        return Term(match.group("field"), word)
    return Term(match.group("field"))


def parse_order(column: str) -> OrderClause:
    """Parse ``"name"``, ``"-name"``, ``"name desc"`` or ``"name asc"``."""
    parts = column.strip().split()
    if not parts or len(parts) > 2:
        raise ValueError(f"Invalid order column '{column}'")
    name = parts[0]
    descending = False
    if name.startswith("-"):
        name, descending = name[1:], True
    if len(parts) == 2:
        direction = parts[1].lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"Invalid order direction '{parts[1]}' in '{column}'")
        descending = direction == "desc"
    return OrderClause(name, descending)


def column(model: type, name: str) -> Any:
    """Return the mapped attribute *name* of *model*.

    Raises:
        ValueError: If *model* maps no attribute called *name*.
    """
    if name not in inspect(model).attrs:
        raise ValueError(f"{model.__name__} has no mapped attribute '{name}'")
    return getattr(model, name)


def _take(parameters: Mapping[int, Any], position: int, expression: str) -> Any:
    if position not in parameters:
        raise ValueError(f"No value bound at position {position} for expression '{expression}'")
    return parameters[position]


def build_where(
    model: type,
    parsed: ParsedExpression,
    parameters: Mapping[int, Any],
    start: int = 1,
) -> ColumnElement[bool] | None:
    """Build the WHERE clause for *parsed*, consuming parameters from *start*."""
    if parsed.raw is not None:
        return _build_raw(parsed.raw, parameters)
    if not parsed.terms:
        return None

    clauses: list[ColumnElement[bool]] = []
    position = start
    for term in parsed.terms:
        col = column(model, term.field_name)
        args = [_take(parameters, position + i, term.field_name) for i in range(term.arity)]
        clauses.append(_build_clause(col, term.operator, args))
        position += term.arity

    combined = clauses[0]
    for i, connector in enumerate(parsed.connectors):
        combined = and_(combined, clauses[i + 1]) if connector == "and" else or_(combined, clauses[i + 1])
    return combined


def _build_raw(raw: str, parameters: Mapping[int, Any]) -> ColumnElement[bool]:
    positions = sorted({int(n) for n in _RAW_PARAM_RE.findall(raw)})
    sql = _RAW_PARAM_RE.sub(lambda m: f":p{m.group(1)}", raw)
    binds = [bindparam(f"p{n}", _take(parameters, n, raw), expanding=_is_collection(parameters[n])) for n in positions]
    return text(sql).bindparams(*binds)  # type: ignore[return-value]


def _is_collection(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _as_list(value: Any) -> list[Any]:
    # a lone scalar (strings included) is a one-element membership list
    return list(value) if _is_collection(value) else [value]


def _build_clause(col: Any, op: str, args: list[Any]) -> ColumnElement[bool]:
    if op == "eq":
        return col.is_(None) if args[0] is None else col == args[0]
    if op == "ne":
        return col.isnot(None) if args[0] is None else col != args[0]
    if op == "gt":
        return col > args[0]
    if op == "gte":
        return col >= args[0]
    if op == "lt":
        return col < args[0]
    if op == "lte":
        return col <= args[0]
    if op == "like":
        return col.like(args[0])
    if op == "not_like":
        return col.not_like(args[0])
    if op == "in":
        return col.in_(_as_list(args[0]))
    if op == "not_in":
        return col.not_in(_as_list(args[0]))
    if op == "between":
        return col.between(args[0], args[1])
    if op == "is_null":
        return col.is_(None)
    if op == "is_not_null":
        return col.isnot(None)
    raise ValueError(f"Unknown operator: {op}")
