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
"""Tests for FlyDaoApplication bootstrap."""

import logging

import pytest

from flydao.core.application import FlyDaoApplication
from flydao.core.config import Config
from flydao.db.manager import db_service_manager, set_db_service_manager


@pytest.fixture(autouse=True)
def reset_global_manager():
    set_db_service_manager(None)
    yield
    set_db_service_manager(None)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestFlyDaoApplication:
    def test_defaults_without_base_dir(self):
        app = FlyDaoApplication()
        assert app.config.loaded_sources == ["flydao-defaults.yaml (framework defaults)"]
        assert app.manager.db_ids == ["default"]

    def test_start_installs_manager(self):
        app = FlyDaoApplication(config=Config.defaults())
        app.start()
        try:
            assert db_service_manager() is app.manager
            assert app.startup_time_seconds >= 0
        finally:
            app.stop()
        assert db_service_manager() is not app.manager

    def test_context_manager(self):
        with FlyDaoApplication(config=Config.defaults()) as app:
            assert db_service_manager() is app.manager
        assert db_service_manager() is not app.manager

    def test_loads_project_config(self, tmp_path):
        (tmp_path / "flydao.yaml").write_text(
            "flydao:\n  data:\n    batch_size: 9\n    databases:\n      reporting: {}\n"
        )
        app = FlyDaoApplication(tmp_path, profiles=[])
        assert app.manager.db_ids == ["default", "reporting"]
        assert app.manager.db_service("reporting").batch_size == 9

    def test_profiles_from_environment(self, tmp_path, monkeypatch):
        (tmp_path / "flydao.yaml").write_text("flydao:\n  data:\n    batch_size: 9\n")
        (tmp_path / "flydao-fast.yaml").write_text("flydao:\n  data:\n    batch_size: 100\n")
        monkeypatch.setenv("FLYDAO_PROFILES_ACTIVE", "fast")
        app = FlyDaoApplication(tmp_path)
        assert app.manager.db_service().batch_size == 100
