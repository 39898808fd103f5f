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
"""flydao DB: Dao ports, model markers, and the service locator.

Adapters:
    - **SQLAlchemy** (``flydao.db.sqlalchemy``): SQLAlchemy 2.0 ORM.

Provider-neutral types are exported directly; the SQLAlchemy adapter
exports are re-exported for convenience.
"""

from flydao.db.dao import Dao, QueryPort
from flydao.db.manager import DbServiceManager, db_service_manager, set_db_service_manager
from flydao.db.model import DEFAULT, Model, db
from flydao.db.sqlalchemy import (
    Base,
    BaseEntity,
    DaoQuery,
    QueryKind,
    SqlAlchemyDao,
    SqlAlchemyService,
    transaction,
    transactional,
)

__all__ = [
    # Provider-neutral
    "DEFAULT",
    "Dao",
    "DbServiceManager",
    "Model",
    "QueryPort",
    "db",
    "db_service_manager",
    "set_db_service_manager",
    # SQLAlchemy adapter
    "Base",
    "BaseEntity",
    "DaoQuery",
    "QueryKind",
    "SqlAlchemyDao",
    "SqlAlchemyService",
    "transaction",
    "transactional",
]
