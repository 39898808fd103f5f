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
"""Tests for model markers and the base entity."""

import uuid

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from flydao.db.model import DEFAULT, Model, db, db_id_of
from flydao.db.sqlalchemy.entity import CREATED, LAST_MODIFIED, BaseEntity, marked_attribute


class TestDbBinding:
    def test_default(self):
        class Plain:
            pass

        assert db_id_of(Plain) == DEFAULT == "default"

    def test_decorator(self):
        @db("reporting")
        class Metric:
            pass

        assert db_id_of(Metric) == "reporting"

    def test_inherited(self):
        @db("archive")
        class Parent:
            pass

        class Child(Parent):
            pass

        assert db_id_of(Child) == "archive"


class TestModelProtocol:
    def test_object_with_id_method(self):
        class Keyed:
            def _id(self):
                return 7

        assert isinstance(Keyed(), Model)

    def test_object_without_id_method(self):
        assert not isinstance(object(), Model)


class TestBaseEntity:
    def test_is_abstract(self):
        assert BaseEntity.__abstract__ is True

    def test_subclass_is_model(self):
        class Invoice(BaseEntity):
            __tablename__ = "model_invoices"

            number: Mapped[str] = mapped_column(String(20))

        invoice = Invoice(id=uuid.uuid4(), number="INV-1")
        assert isinstance(invoice, Model)
        assert invoice._id() == invoice.id
        assert marked_attribute(Invoice, CREATED) == "created_at"
        assert marked_attribute(Invoice, LAST_MODIFIED) == "updated_at"
