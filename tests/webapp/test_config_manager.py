# tests/webapp/test_config_manager.py
import json
import os

import pytest

from webanalyzer.core.managers.config_manager import ConfigManager
from webanalyzer.core.utils.path_utils import PathUtils

MOCK_SETTINGS_CONTENT = {
    "debug": {"level": "WARNING"},
    "analyzer": {"max_probe_workers": 20, "show_progress": False},
    "server": {"port": 8080},
}


@pytest.fixture
def config_env(tmp_path, monkeypatch):
    """
    Points the ConfigManager at a temporary settings.json and reloads it.
    The shared singleton is reloaded from the real file afterwards.
    """
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps(MOCK_SETTINGS_CONTENT))

    for name in [n for n in os.environ if n.startswith("WEBANALYZER__")]:
        monkeypatch.delenv(name)
    monkeypatch.setattr(PathUtils, "get_settings_file", lambda: settings_file)

    manager = ConfigManager()
    manager.reset()
    yield manager

    monkeypatch.undo()
    manager.reset()


def test_config_manager_is_singleton():
    assert ConfigManager() is ConfigManager()


def test_config_manager_load(config_env):
    config = config_env.get_all()
    assert config["debug"]["level"] == "WARNING"
    assert config["analyzer"]["max_probe_workers"] == 20


def test_config_manager_get_nested(config_env):
    assert config_env.get_nested("server.port") == 8080
    assert config_env.get_nested("non.existent.key", "default") == "default"
    assert config_env.get_nested("server.port.deeper", "default") == "default"


def test_config_manager_set_nested_casts_to_existing_type(config_env):
    config_env.set_nested("analyzer.max_probe_workers", "7")
    assert config_env.get_nested("analyzer.max_probe_workers") == 7

    config_env.set_nested("analyzer.show_progress", "true")
    assert config_env.get_nested("analyzer.show_progress") is True

    config_env.set_nested("new_feature.enabled", "yes")
    assert config_env.get_nested("new_feature.enabled") == "yes"


def test_config_manager_env_override(config_env, monkeypatch):
    monkeypatch.setenv("WEBANALYZER__SERVER__PORT", "9090")
    monkeypatch.setenv("WEBANALYZER__DEBUG__LEVEL", "DEBUG")
    config_env.reset()

    assert config_env.get_nested("server.port") == 9090
    assert config_env.get_nested("debug.level") == "DEBUG"


def test_config_manager_missing_file(tmp_path, monkeypatch, config_env):
    monkeypatch.setattr(PathUtils, "get_settings_file", lambda: tmp_path / "absent.json")
    config_env.reset()
    assert config_env.get_all() == {}


def test_config_manager_invalid_json(tmp_path, monkeypatch, config_env):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    monkeypatch.setattr(PathUtils, "get_settings_file", lambda: broken)
    config_env.reset()
    assert config_env.get_all() == {}


def test_shipped_settings_file_exists():
    assert PathUtils.get_settings_file().is_file()
