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
"""SQLAlchemy adapter: default Dao implementation."""

from flydao.db.sqlalchemy.auditing import AuditingEntityListener
from flydao.db.sqlalchemy.dao import SqlAlchemyDao
from flydao.db.sqlalchemy.entity import Base, BaseEntity, created_column, last_modified_column
from flydao.db.sqlalchemy.query import DaoQuery
from flydao.db.sqlalchemy.service import EntityMetadata, SqlAlchemyService
from flydao.db.sqlalchemy.sql import QueryKind
from flydao.db.sqlalchemy.transactional import Propagation, transaction, transactional

__all__ = [
    "AuditingEntityListener",
    "Base",
    "BaseEntity",
    "DaoQuery",
    "EntityMetadata",
    "Propagation",
    "QueryKind",
    "SqlAlchemyDao",
    "SqlAlchemyService",
    "created_column",
    "last_modified_column",
    "transaction",
    "transactional",
]
