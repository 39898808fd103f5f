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
"""Entity auditing: stamps created / last-modified columns via ORM events.

Column defaults cover entities built with :func:`created_column` and
:func:`last_modified_column`; the listener also covers entities that only
name their audit columns through ``__created_column__`` /
``__last_modified_column__``, and lets tests supply a fixed clock.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import event

from flydao.db.sqlalchemy.entity import CREATED, LAST_MODIFIED, Base, marked_attribute, utcnow

logger = logging.getLogger(__name__)


class AuditingEntityListener:
    """Registers ``before_insert`` / ``before_update`` listeners on a declarative base.

    Args:
        clock: Source of the timestamps written.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._target: type | None = None

    def register(self, base: type = Base) -> None:
        """Attach the listeners to *base* and all of its mapped subclasses."""
        event.listen(base, "before_insert", self._on_insert, propagate=True)
        event.listen(base, "before_update", self._on_update, propagate=True)
        self._target = base
        logger.info("Registered entity auditing listeners on %s", base.__name__)

    def unregister(self) -> None:
        if self._target is None:
            return
        event.remove(self._target, "before_insert", self._on_insert)
        event.remove(self._target, "before_update", self._on_update)
        self._target = None

    def _on_insert(self, mapper: Any, connection: Any, target: Any) -> None:
        now = self._clock()
        created = marked_attribute(mapper.class_, CREATED)
        if created is not None and getattr(target, created) is None:
            setattr(target, created, now)
        last_modified = marked_attribute(mapper.class_, LAST_MODIFIED)
        if last_modified is not None and getattr(target, last_modified) is None:
            setattr(target, last_modified, now)

    def _on_update(self, mapper: Any, connection: Any, target: Any) -> None:
        last_modified = marked_attribute(mapper.class_, LAST_MODIFIED)
        if last_modified is not None:
            setattr(target, last_modified, self._clock())
