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
"""Data subsystem configuration properties."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from flydao.core.config import bind_dataclass, config_properties


@config_properties(prefix="flydao.data")
@dataclass
class DataProperties:
    """Configuration for the default database (flydao.data.*).

    ``databases`` maps additional db ids to per-database overrides of the
    same keys, e.g. ``{"reporting": {"url": "postgresql://..."}}``.
    """

    url: str = "sqlite://"
    echo: bool = False
    batch_size: int = 20
    ddl_auto: str = "none"
    databases: dict[str, Any] = field(default_factory=dict)

    def for_database(self, db_id: str) -> DataProperties:
        """Properties for *db_id*: this section overlaid with its override entry."""
        overrides = {k.replace("-", "_"): v for k, v in (self.databases.get(db_id) or {}).items()}
        merged = bind_dataclass(DataProperties, {**_scalar_fields(self), **overrides})
        return replace(merged, databases={})


def _scalar_fields(props: DataProperties) -> dict[str, Any]:
    return {"url": props.url, "echo": props.echo, "batch_size": props.batch_size, "ddl_auto": props.ddl_auto}
