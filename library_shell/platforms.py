"""Platform classification for title records."""

from pathlib import PurePath
from typing import Optional

from .constants import EMULATOR_PLATFORMS, FOLDER_PLATFORMS, PC_PLATFORM
from .models import GameRecord, TitleRecord


def platform_from_emulator(emulator_path: Optional[str]) -> Optional[str]:
    if not emulator_path:
        return None
    exe_name = PurePath(emulator_path.replace("\\", "/")).name.lower()
    for fragment, platform in EMULATOR_PLATFORMS:
        if fragment in exe_name:
            return platform
    return None


def platform_from_folder(folder: Optional[str]) -> Optional[str]:
    if not folder:
        return None
    segments = {part.lower() for part in PurePath(folder.replace("\\", "/")).parts}
    for names, platform in FOLDER_PLATFORMS:
        if any(name.lower() in segments for name in names):
            return platform
    return None


def detect_platform(record: TitleRecord) -> str:
    """
    Platform string for a record.

    The emulator executable wins over folder conventions; anything that
    cannot be classified is treated as a PC title.
    """
    if isinstance(record, GameRecord):
        platform = platform_from_emulator(record.emulator)
        if platform:
            return platform
    return platform_from_folder(record.folder) or PC_PLATFORM


def is_pc_platform(record: TitleRecord) -> bool:
    return detect_platform(record) == PC_PLATFORM
