"""
Per-title launch preferences.

Backed by a JSON map from lower-cased title name to
``{"preferredExe", "preferredRom", "preferredUrl"}``. Records are replaced
wholesale on save, with one exception: a record saved without a
preferred URL keeps the URL already stored for that title.
"""

from pathlib import Path
from typing import Dict, Optional

import msgspec

from .logger import setup_logger
from .models import PreferenceRecord, decode_json, write_json_file

logger = setup_logger()

SETTINGS_FILE_NAME = "game_settings.json"
ARGS_SUFFIX = ".args"


def settings_key(title_name: str) -> str:
    """Case folding only; no token stripping."""
    return (title_name or "").lower()


class SettingsStore:
    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Dict[str, PreferenceRecord]:
        """All stored preferences; a missing or corrupt file yields ``{}``."""
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Could not read settings file {self.path}: {e}")
            return {}

        try:
            settings = decode_json(data, type=Dict[str, PreferenceRecord])
        except msgspec.DecodeError as e:
            logger.warning(f"Ignoring malformed settings file {self.path}: {e}")
            return {}
        return {settings_key(name): record for name, record in settings.items()}

    def save(self, settings: Dict[str, PreferenceRecord]) -> None:
        """
        Replace the stored map with ``settings``.

        Any record whose ``preferred_url`` is unset inherits the URL
        currently stored under the same key.
        """
        previous = self.load()
        merged = {}
        for name, record in settings.items():
            key = settings_key(name)
            old = previous.get(key)
            if record.preferred_url is None and old is not None and old.preferred_url:
                record = PreferenceRecord(
                    preferred_exe=record.preferred_exe,
                    preferred_rom=record.preferred_rom,
                    preferred_url=old.preferred_url,
                )
            merged[key] = record

        try:
            write_json_file(self.path, merged)
        except OSError as e:
            logger.error(f"Failed to write settings file {self.path}: {e}")
            return
        logger.debug(f"Saved preferences for {len(merged)} titles to {self.path}")

    def get(self, title_name: str) -> Optional[PreferenceRecord]:
        return self.load().get(settings_key(title_name))

    def save_preference(self, title_name: str, record: PreferenceRecord) -> None:
        """Store ``record`` for one title, keeping every other title as is."""
        settings = self.load()
        settings[settings_key(title_name)] = record
        self.save(settings)


def load_exe_arguments(exe_path) -> str:
    """Launch arguments stored beside the executable in ``<exe>.args``."""
    arg_file = Path(str(exe_path) + ARGS_SUFFIX)
    try:
        return arg_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
    except OSError as e:
        logger.debug(f"Could not read arguments file {arg_file}: {e}")
        return ""


def save_exe_arguments(exe_path, arguments: Optional[str]) -> bool:
    arg_file = Path(str(exe_path) + ARGS_SUFFIX)
    try:
        arg_file.write_text(arguments or "", encoding="utf-8")
    except OSError as e:
        logger.error(f"Could not write arguments file {arg_file}: {e}")
        return False
    return True
