import configparser
import threading
from enum import StrEnum
from pathlib import Path
from typing import List, Optional

import appdirs

from .logger import setup_logger

logger = setup_logger()

APP_NAME = "LibraryShell"
APP_AUTHOR = "LibraryShell"


def get_config_dir() -> Path:
    return Path(appdirs.user_config_dir(APP_NAME, APP_AUTHOR))


def get_config_path() -> str:
    return str(get_config_dir() / "config.ini")


class ConfigSection(StrEnum):
    LIBRARY = "Library"
    MONITOR = "Monitor"
    STORE = "Store"
    ACCOUNTS = "Accounts"


DEFAULTS = {
    ConfigSection.LIBRARY: {
        "volumes": "",
        "data_dir": "",
        "steam_exe": "",
    },
    ConfigSection.MONITOR: {
        "discovery_attempts": "50",
        "discovery_interval": "0.1",
        "poll_interval": "0.5",
        "log_dir": "",
        "log_pattern": "Ryujinx_*.log",
    },
    ConfigSection.STORE: {
        "search_url": "https://store.steampowered.com/api/storesearch/",
        "timeout": "10",
        "catalog_file": "",
    },
    ConfigSection.ACCOUNTS: {
        "username": "Default",
    },
}


class ConfigManager(configparser.ConfigParser):
    _instance = None
    _lock = threading.Lock()

    def __new__(cls, *args, **kwargs):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        with self._lock:
            if getattr(self, "initialized", False):
                return
            super().__init__()
            self.logger = setup_logger()
            self.config_path = get_config_path()
            self.read_dict({str(section): values for section, values in DEFAULTS.items()})
            try:
                self.read(self.config_path, encoding="utf-8")
            except configparser.Error as e:
                self.logger.warning(f"Ignoring unreadable config {self.config_path}: {e}")
            self.initialized = True

    def save(self):
        path = Path(self.config_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as configfile:
            self.write(configfile)
        self.logger.debug(f"Saved configuration to {path}")

    def get_float(self, section: ConfigSection, key: str) -> float:
        try:
            return self.getfloat(section, key)
        except ValueError:
            return float(DEFAULTS[section][key])

    def get_int(self, section: ConfigSection, key: str) -> int:
        try:
            return self.getint(section, key)
        except ValueError:
            return int(DEFAULTS[section][key])

    def get_volumes(self) -> List[str]:
        """Configured volume roots; empty means auto-detect."""
        raw = self[ConfigSection.LIBRARY].get("volumes", "")
        return [v.strip() for v in raw.split(";") if v.strip()]

    def set_volumes(self, volumes: List[str]):
        self.logger.debug(f"Updating configured volumes to {volumes}")
        self[ConfigSection.LIBRARY]["volumes"] = ";".join(volumes)
        self.save()

    def get_data_dir(self) -> Path:
        configured = self[ConfigSection.LIBRARY].get("data_dir")
        if configured:
            return Path(configured)
        return get_config_dir() / "Data"

    def get_username(self) -> str:
        return self[ConfigSection.ACCOUNTS].get("username") or "Default"

    def get_steam_exe(self) -> Optional[str]:
        return self[ConfigSection.LIBRARY].get("steam_exe") or None

    def get_log_dir(self) -> Path:
        configured = self[ConfigSection.MONITOR].get("log_dir")
        if configured:
            return Path(configured)
        return self.get_data_dir() / "Emulators" / "Ryujinx" / "portable" / "logs"

    def get_store_catalog_file(self) -> Path:
        configured = self[ConfigSection.STORE].get("catalog_file")
        if configured:
            return Path(configured)
        return self.get_data_dir() / "Accounts" / self.get_username() / "Lib" / "Steam" / "AllSteamGames.json"

    def get_account_dir(self) -> Path:
        return self.get_data_dir() / "Accounts" / self.get_username()


config_manager = ConfigManager()
