import os
import platform
from pathlib import Path

import pytest

from sediment.configmanager import ConfigManager


@pytest.fixture(name="config_manager")
def fixture_config_manager(tmp_path):
    config_manager = ConfigManager(app_name="testapp", config_dir=tmp_path)
    yield config_manager
    ConfigManager.delete_instance("testapp")


def test_singleton(config_manager):
    assert ConfigManager(app_name="testapp") is config_manager


def test_set_and_get(config_manager):
    config_manager.set("scan", "workers", 8)
    assert config_manager.get("scan", "workers") == 8
    assert config_manager["scan"]["workers"] == 8


def test_get_with_fallback(config_manager):
    assert config_manager.get("resolver", "max_depth", 128) == 128
    assert config_manager["resolver"] is None


def test_get_list(config_manager):
    config_manager.set("merge", "merge_attributes", ["Root Paths", "Source Project"])
    config_manager.set("plugins", "blocked", "npm, cargo")
    assert config_manager.get_list("merge", "merge_attributes") == ["Root Paths", "Source Project"]
    assert config_manager.get_list("plugins", "blocked") == ["npm", "cargo"]
    assert config_manager.get_list("plugins", "missing") == []
    assert config_manager.get_list("plugins", "missing", ["a"]) == ["a"]


def test_config_file_creation(config_manager):
    config_manager.set("scan", "workers", 2)
    assert config_manager.config_file_path.exists()
    assert config_manager.config_file_path.parts[-2:] == ("testapp", "config.toml")


def test_reload_after_delete(tmp_path):
    ConfigManager(app_name="testapp", config_dir=tmp_path).set("rar", "enabled", False)
    ConfigManager.delete_instance("testapp")
    reloaded = ConfigManager(app_name="testapp", config_dir=tmp_path)
    assert reloaded.get("rar", "enabled") is False
    ConfigManager.delete_instance("testapp")


@pytest.mark.skipif(platform.system() == "Windows", reason="Test specific to Unix-like platforms")
def test_unix_config_path():
    config_manager = ConfigManager(app_name="testapp")
    config_path = config_manager._get_config_file_path()  # pylint: disable=protected-access
    expected_config_dir = Path(os.getenv("XDG_CONFIG_HOME", str(Path("~/.config").expanduser())))
    assert expected_config_dir in config_path.parents
    assert config_path.parts[-2:] == ("testapp", "config.toml")
    # delete instance so other tests don't accidentally use it
    config_manager.delete_instance("testapp")


def test_preserve_comments(config_manager):
    config_manager.set("scan", "workers", 2)
    with open(config_manager.config_file_path, "a") as configfile:
        configfile.write("\n# tuned for the build server\n")
    # Force reload of cached config in the ConfigManager
    config_manager._load_config()  # pylint: disable=protected-access
    config_manager.set("scan", "scratch_dir", "/tmp")
    with open(config_manager.config_file_path, "r") as configfile:
        content = configfile.read()
    assert "# tuned for the build server" in content
