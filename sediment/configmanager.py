# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import os
import platform
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Union

import tomlkit


class ConfigManager:
    """Singleton access to the TOML settings file of an application. The loaded document is
    cached, so edits made by other processes are not seen while a program is running.

    Attributes:
        app_name (str): The name of the application. (Default: 'sediment')
        config_dir (Optional[Path]): Directory holding the settings file, when overridden.
        config (tomlkit.TOMLDocument): The loaded settings; formatting and comments are preserved.
        config_file_path (Path): Location of the settings file.
    """

    _initialized: bool = False
    _instances: Dict[str, "ConfigManager"] = {}
    _lock = Lock()

    def __new__(
        cls, app_name: str = "sediment", config_dir: Optional[Union[str, Path]] = None
    ) -> "ConfigManager":
        """Returns the one instance per application name, creating it on first use.

        Args:
            app_name (str): The name of the application. (Default: 'sediment')
            config_dir (Optional[Union[str, Path]]): Overrides the directory holding the
                application's settings.

        Returns:
            ConfigManager: The shared instance for app_name.
        """
        with cls._lock:
            if app_name not in cls._instances:
                instance = super(ConfigManager, cls).__new__(cls)
                instance._initialized = False
                cls._instances[app_name] = instance
            return cls._instances[app_name]

    def __init__(
        self, app_name: str = "sediment", config_dir: Optional[Union[str, Path]] = None
    ) -> None:
        """Loads the settings file the first time the instance is constructed.

        Args:
            app_name (str): The name of the application. (Default: 'sediment')
            config_dir (Optional[Union[str, Path]]): Overrides the directory holding the
                application's settings.
        """
        if self._initialized:
            return
        self._initialized = True

        self.app_name = app_name
        self.config_dir = Path(config_dir) / app_name if config_dir else None
        self.config = tomlkit.document()
        self.config_file_path = self._get_config_file_path()
        self._load_config()

    def _get_config_file_path(self) -> Path:
        """Determines where the settings file lives.

        Returns:
            Path: config.toml under the override directory, or under the platform's per-user
            configuration directory (APPDATA on Windows, XDG_CONFIG_HOME elsewhere).
        """
        if self.config_dir:
            return (Path(self.config_dir) / "config.toml").expanduser()
        if platform.system() == "Windows":
            base_dir = Path(os.getenv("APPDATA", str(Path("~\\AppData\\Roaming"))))
        else:
            base_dir = Path(os.getenv("XDG_CONFIG_HOME", str(Path("~/.config"))))
        return (base_dir / self.app_name / "config.toml").expanduser()

    def _load_config(self) -> None:
        """Reads the settings file, if there is one; otherwise an empty document is kept."""
        if self.config_file_path.exists():
            with open(self.config_file_path, "r") as configfile:
                self.config = tomlkit.parse(configfile.read())

    def get(self, section: str, option: str, fallback: Optional[Any] = None) -> Any:
        """Gets a setting, unwrapped from its tomlkit item type.

        Args:
            section (str): The table within the settings file.
            option (str): The key within the table.
            fallback (Optional[Any]): Returned when the setting is absent.

        Returns:
            Any: The setting or the fallback value.
        """
        value = self.config.get(section, {}).get(option, fallback)
        if hasattr(value, "unwrap"):
            return value.unwrap()
        return value

    def get_list(self, section: str, option: str, fallback: Optional[List[str]] = None) -> List[str]:
        """Gets a setting that holds a list of strings; a single string is split on commas."""
        value = self.get(section, option, fallback)
        if value is None:
            return []
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return list(value)

    def set(self, section: str, option: str, value: Any) -> None:
        """Sets a setting and writes the settings file.

        Args:
            section (str): The table within the settings file.
            option (str): The key within the table.
            value (Any): The value to store.
        """
        if section not in self.config:
            self.config[section] = tomlkit.table()
        self.config[section][option] = value
        self._save_config()

    def _save_config(self) -> None:
        """Writes the settings document back, creating the directory when needed."""
        if not self.config_file_path.exists():
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file_path, "w") as configfile:
            configfile.write(tomlkit.dumps(self.config))

    def __getitem__(self, key: str) -> Any:
        """Gives dictionary-like access to a table or top-level value of the settings.
        NOTE: The result is 'None' for a missing key; check it before indexing further.

        Args:
            key (str): Name of the table or value.

        Returns:
            Any: The tomlkit item, or 'None' if the key doesn't exist.
        """
        if key not in self.config:
            return None
        return self.config[key]

    @classmethod
    def delete_instance(cls, app_name: str) -> None:
        """Forgets the cached instance for an application, forcing a reload on next use.

        Args:
            app_name (str): The name of the application.
        """
        with cls._lock:
            if app_name in cls._instances:
                del cls._instances[app_name]
