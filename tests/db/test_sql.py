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
"""Tests for the filter expression parser and clause builder."""

import pytest
from sqlalchemy import Integer, String, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from flydao.db.sqlalchemy.sql import (
    OrderClause,
    ParsedExpression,
    Term,
    build_where,
    column,
    parse_expression,
    parse_order,
    split_fields,
)


class Base(DeclarativeBase):
    pass


class Account(Base):
    __tablename__ = "sql_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner: Mapped[str] = mapped_column(String(100))
    balance: Mapped[int] = mapped_column(Integer)


def _where_sql(parsed: ParsedExpression, parameters: dict, start: int = 1) -> str:
    clause = build_where(Account, parsed, parameters, start)
    return str(select(Account).where(clause).compile(compile_kwargs={"literal_binds": True}))


class TestSplitFields:
    def test_commas_and_spaces(self):
        assert split_fields("name, age") == ["name", "age"]

    def test_mixed_separators(self):
        assert split_fields(" a;b:c  d ") == ["a", "b", "c", "d"]

    def test_empty(self):
        assert split_fields("") == []


class TestParseExpression:
    def test_empty(self):
        parsed = parse_expression("")
        assert parsed.is_empty
        assert parsed.terms == ()

    def test_bare_field_defaults_to_equality(self):
        assert parse_expression("owner").terms == (Term("owner", "eq"),)

    @pytest.mark.parametrize(
        ("expression", "operator"),
        [
            ("balance =", "eq"),
            ("balance ==", "eq"),
            ("balance !=", "ne"),
            ("balance <>", "ne"),
            ("balance >", "gt"),
            ("balance >=", "gte"),
            ("balance <", "lt"),
            ("balance <=", "lte"),
            ("owner like", "like"),
            ("owner not like", "not_like"),
            ("owner in", "in"),
            ("owner not in", "not_in"),
            ("balance between", "between"),
            ("owner is null", "is_null"),
            ("owner is not null", "is_not_null"),
        ],
    )
    def test_operators(self, expression, operator):
        assert parse_expression(expression).terms == (Term(expression.split()[0], operator),)

    def test_operator_without_space(self):
        assert parse_expression("balance>=").terms == (Term("balance", "gte"),)

    def test_connectors(self):
        parsed = parse_expression("owner, balance > or id in")
        assert [t.field_name for t in parsed.terms] == ["owner", "balance", "id"]
        assert parsed.connectors == ("and", "or")

    def test_and_keyword(self):
        assert parse_expression("owner AND balance").connectors == ("and",)

    def test_raw_sql(self):
        parsed = parse_expression("balance > ?1 and owner like ?2")
        assert parsed.raw == "balance > ?1 and owner like ?2"
        assert not parsed.is_empty

    def test_invalid_term(self):
        with pytest.raises(ValueError, match="Invalid term"):
            parse_expression("balance ~~")

    def test_arity(self):
        assert Term("balance", "between").arity == 2
        assert Term("owner", "is_null").arity == 0
        assert Term("owner").arity == 1


class TestParseOrder:
    def test_ascending(self):
        assert parse_order("owner") == OrderClause("owner", False)

    def test_minus_prefix(self):
        assert parse_order("-balance") == OrderClause("balance", True)

    def test_desc_suffix(self):
        assert parse_order("balance DESC") == OrderClause("balance", True)
        assert parse_order("balance asc") == OrderClause("balance", False)

    def test_invalid_direction(self):
        with pytest.raises(ValueError):
            parse_order("balance sideways")


class TestColumn:
    def test_mapped_attribute(self):
        assert column(Account, "owner") is Account.owner

    def test_unknown_attribute(self):
        with pytest.raises(ValueError, match="no mapped attribute 'missing'"):
            column(Account, "missing")


class TestBuildWhere:
    def test_empty_expression(self):
        assert build_where(Account, parse_expression(""), {}) is None

    def test_equality(self):
        sql = _where_sql(parse_expression("owner"), {1: "alice"})
        assert "sql_accounts.owner = 'alice'" in sql

    def test_none_becomes_is_null(self):
        sql = _where_sql(parse_expression("owner"), {1: None})
        assert "sql_accounts.owner IS NULL" in sql

    def test_conjunction_and_disjunction(self):
        sql = _where_sql(parse_expression("owner, balance > or id"), {1: "a", 2: 5, 3: 7})
        assert "sql_accounts.owner = 'a' AND sql_accounts.balance > 5 OR sql_accounts.id = 7" in sql

    def test_between_consumes_two_parameters(self):
        sql = _where_sql(parse_expression("balance between, owner"), {1: 1, 2: 9, 3: "z"})
        assert "sql_accounts.balance BETWEEN 1 AND 9" in sql
        assert "sql_accounts.owner = 'z'" in sql

    def test_is_null_consumes_no_parameter(self):
        sql = _where_sql(parse_expression("owner is not null, balance"), {1: 3})
        assert "sql_accounts.owner IS NOT NULL" in sql
        assert "sql_accounts.balance = 3" in sql

    def test_in_list(self):
        sql = _where_sql(parse_expression("id in"), {1: [1, 2, 3]})
        assert "sql_accounts.id IN (1, 2, 3)" in sql

    def test_in_scalar_string_is_single_value(self):
        sql = _where_sql(parse_expression("owner in"), {1: "abc"})
        assert "sql_accounts.owner IN ('abc')" in sql

    def test_not_in_scalar(self):
        sql = _where_sql(parse_expression("id not in"), {1: 4})
        assert "sql_accounts.id NOT IN (4)" in sql

    def test_start_offset(self):
        sql = _where_sql(parse_expression("id"), {1: "ignored", 2: 42}, start=2)
        assert "sql_accounts.id = 42" in sql

    def test_missing_parameter(self):
        with pytest.raises(ValueError, match="No value bound at position 2"):
            build_where(Account, parse_expression("owner, balance"), {1: "a"})

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            build_where(Account, parse_expression("nickname"), {1: "a"})

    def test_raw_sql_placeholders(self):
        clause = build_where(Account, parse_expression("balance > ?1 and owner = ?2"), {1: 10, 2: "a"})
        assert str(clause) == "balance > :p1 and owner = :p2"

    def test_raw_sql_missing_parameter(self):
        with pytest.raises(ValueError):
            build_where(Account, parse_expression("balance > ?2"), {1: 10})
