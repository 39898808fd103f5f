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
"""Tests for DaoQuery descriptors."""

import pytest
from sqlalchemy import Integer, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column
from sqlalchemy.pool import StaticPool

from flydao.db.dao import QueryPort
from flydao.db.sqlalchemy.query import DaoQuery
from flydao.db.sqlalchemy.sql import QueryKind
from flydao.kernel.exceptions import UnsupportedOperationException


class Base(DeclarativeBase):
    pass


class Book(Base):
    __tablename__ = "query_books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(100))
    pages: Mapped[int] = mapped_column(Integer)


@pytest.fixture
def session():
    engine = create_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        session.add_all(
            [
                Book(title="Dune", pages=412),
                Book(title="Emma", pages=300),
                Book(title="Ulysses", pages=730),
            ]
        )
        session.flush()
        yield session
    engine.dispose()


class TestBuilding:
    def test_satisfies_query_port(self, session):
        assert isinstance(DaoQuery(session, Book), QueryPort)

    def test_bind_is_one_based(self, session):
        q = DaoQuery(session, Book, QueryKind.FIND, "title, pages").bind("Dune", 412)
        assert q.parameters == {1: "Dune", 2: 412}

    def test_set_parameter_rejects_zero(self, session):
        with pytest.raises(ValueError):
            DaoQuery(session, Book).set_parameter(0, "x")

    def test_update_requires_columns(self, session):
        with pytest.raises(ValueError):
            DaoQuery(session, Book, QueryKind.UPDATE, "id")

    def test_order_by_returns_copy(self, session):
        q = DaoQuery(session, Book)
        ordered = q.order_by("-pages")
        assert ordered is not q
        assert [b.title for b in q.fetch()] == ["Dune", "Emma", "Ulysses"]
        assert [b.title for b in ordered.fetch()] == ["Ulysses", "Dune", "Emma"]

    def test_order_by_accumulates(self, session):
        session.add(Book(title="Anna", pages=300))
        session.flush()
        q = DaoQuery(session, Book).order_by("pages").order_by("title desc")
        assert [b.title for b in q.fetch()] == ["Emma", "Anna", "Dune", "Ulysses"]

    def test_as_delete_keeps_filter_and_parameters(self, session):
        q = DaoQuery(session, Book, QueryKind.FIND, "pages >").bind(400)
        deleted = q.as_delete()
        assert deleted.kind is QueryKind.DELETE
        assert deleted.expression == "pages >"
        assert deleted.parameters == {1: 400}

    def test_as_delete_from_update_drops_set_values(self, session):
        q = DaoQuery(session, Book, QueryKind.UPDATE, "title", columns=["pages"]).bind(1, "Emma")
        assert q.as_delete().parameters == {1: "Emma"}

    def test_as_delete_from_update_keeps_raw_positions(self, session):
        q = DaoQuery(session, Book, QueryKind.UPDATE, "title = ?2", columns=["pages"]).bind(1, "Emma")
        assert q.execute_update() == 1
        deleted = q.as_delete()
        assert deleted.parameters == {1: 1, 2: "Emma"}
        assert deleted.execute_update() == 1
        assert DaoQuery(session, Book).count() == 2

    def test_str_renders_statement(self, session):
        q = DaoQuery(session, Book, QueryKind.FIND, "title").bind("Dune")
        assert "FROM query_books" in str(q)
        assert "query_books.title = :title_1" in str(q)

    def test_repr(self, session):
        q = DaoQuery(session, Book, QueryKind.COUNT, "pages >").bind(1)
        assert repr(q) == "DaoQuery(model=Book, kind=COUNT, expression='pages >', columns=[], parameters={1: 1})"


class TestExecution:
    def test_first(self, session):
        q = DaoQuery(session, Book, QueryKind.FIND, "pages >").bind(400).order_by("pages")
        assert q.first().title == "Dune"

    def test_first_no_match(self, session):
        assert DaoQuery(session, Book, QueryKind.FIND, "title").bind("Nope").first() is None

    def test_fetch_is_iterable(self, session):
        titles = [b.title for b in DaoQuery(session, Book, QueryKind.FIND, "pages <").bind(500).order_by("title").fetch()]
        assert titles == ["Dune", "Emma"]

    def test_fetch_columns_yields_rows(self, session):
        q = DaoQuery(session, Book, QueryKind.FIND, "title", columns=["title", "pages"]).bind("Emma")
        assert [tuple(r) for r in q.fetch()] == [("Emma", 300)]
        assert tuple(q.first()) == ("Emma", 300)

    def test_count(self, session):
        assert DaoQuery(session, Book).count() == 3
        assert DaoQuery(session, Book, QueryKind.COUNT, "pages >=").bind(412).count() == 2

    def test_count_ignores_order(self, session):
        assert DaoQuery(session, Book).order_by("-pages").count() == 3

    def test_execute_update(self, session):
        q = DaoQuery(session, Book, QueryKind.UPDATE, "pages <", columns=["title"]).bind("Short", 500)
        assert q.execute_update() == 2
        assert DaoQuery(session, Book, QueryKind.FIND, "title").bind("Short").count() == 2

    def test_execute_update_missing_set_value(self, session):
        q = DaoQuery(session, Book, QueryKind.UPDATE, "", columns=["title", "pages"]).set_parameter(2, 10)
        with pytest.raises(ValueError, match="update column position"):
            q.execute_update()

    def test_execute_delete(self, session):
        assert DaoQuery(session, Book, QueryKind.DELETE, "pages >").bind(400).execute_update() == 2
        assert DaoQuery(session, Book).count() == 1

    def test_delete_without_filter_removes_all(self, session):
        assert DaoQuery(session, Book, QueryKind.DELETE).execute_update() == 3

    def test_raw_in_list(self, session):
        q = DaoQuery(session, Book, QueryKind.FIND, "title in ?1").bind(["Dune", "Emma"])
        assert {b.title for b in q.fetch()} == {"Dune", "Emma"}


class TestKindMismatch:
    @pytest.mark.parametrize("kind", [QueryKind.COUNT, QueryKind.DELETE])
    def test_fetch_requires_find(self, session, kind):
        with pytest.raises(UnsupportedOperationException):
            DaoQuery(session, Book, kind).fetch()

    def test_first_requires_find(self, session):
        with pytest.raises(UnsupportedOperationException):
            DaoQuery(session, Book, QueryKind.DELETE).first()

    def test_count_rejects_delete(self, session):
        with pytest.raises(UnsupportedOperationException):
            DaoQuery(session, Book, QueryKind.DELETE).count()

    def test_execute_update_rejects_find(self, session):
        with pytest.raises(UnsupportedOperationException) as exc_info:
            DaoQuery(session, Book).execute_update()
        assert exc_info.value.code == "DAO_UNSUPPORTED"
        assert exc_info.value.context == {"kind": "FIND"}
