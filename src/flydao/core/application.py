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
"""Application bootstrap: wires configuration, logging, and database services."""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Any

from flydao.core.config import Config
from flydao.db.manager import DbServiceManager, set_db_service_manager
from flydao.logging.structlog_adapter import StructlogAdapter


class FlyDaoApplication:
    """Loads config, configures logging, and owns the database services.

    Startup sequence:
    1. Load configuration (defaults, project files, profile overlays)
    2. Configure logging from ``flydao.logging``
    3. Build a :class:`DbServiceManager` from ``flydao.data`` and install it
       as the process-wide manager
    4. ``start()`` applies each service's schema strategy

    Usage::

        app = FlyDaoApplication(".", profiles=["dev"])
        with app:
            UserDao().save(User(name="Alice"))
    """

    def __init__(
        self,
        base_dir: str | Path | None = None,
        profiles: list[str] | None = None,
        config: Config | None = None,
    ) -> None:
        if config is None:
            active = profiles if profiles is not None else self._profiles_from_env()
            config = Config.from_sources(base_dir, active_profiles=active) if base_dir else Config.defaults()
        self.config = config

        self._logging = StructlogAdapter()
        self._logging.configure(self.config)
        self._logger = self._logging.get_logger("flydao.core")

        self._manager = DbServiceManager.from_config(self.config)
        self._startup_time = 0.0

    @staticmethod
    def _profiles_from_env() -> list[str]:
        raw = os.environ.get("FLYDAO_PROFILES_ACTIVE", "")
        return [p.strip() for p in raw.split(",") if p.strip()]

    @property
    def manager(self) -> DbServiceManager:
        return self._manager

    @property
    def startup_time_seconds(self) -> float:
        return self._startup_time

    def start(self) -> None:
        start = time.perf_counter()
        set_db_service_manager(self._manager)
        self._manager.start()
        self._startup_time = time.perf_counter() - start
        self._logger.info(
            "flydao_started",
            databases=self._manager.db_ids,
            sources=self.config.loaded_sources,
            seconds=round(self._startup_time, 3),
        )

    def stop(self) -> None:
        self._manager.stop()
        set_db_service_manager(None)
        self._logger.info("flydao_stopped")

    def __enter__(self) -> FlyDaoApplication:
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()
