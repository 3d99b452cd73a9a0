"""
Installed applications catalog.

Built once from Start Menu shortcuts and the Windows uninstall registry,
then read by the scanner on every pass. On other platforms only the
shortcut folders that exist contribute.
"""

import asyncio
import os
import sys
from pathlib import Path
from typing import Iterable, List, Optional

import msgspec

from .logger import setup_logger
from .models import InstalledApp, decode_json, write_json_file

logger = setup_logger()

IS_WINDOWS = sys.platform == "win32"

UNINSTALL_REGISTRY_PATHS = (
    r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
    r"SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall",
)

START_MENU_SOURCE = "StartMenu"
REGISTRY_SOURCE = "Registry"


def start_menu_dirs() -> List[Path]:
    dirs = []
    for env_var in ("APPDATA", "PROGRAMDATA"):
        base = os.environ.get(env_var)
        if base:
            dirs.append(Path(base) / "Microsoft" / "Windows" / "Start Menu" / "Programs")
    return dirs


def collect_shortcuts(directories: Iterable[Path]) -> List[InstalledApp]:
    apps = []
    seen_dirs = set()
    for directory in directories:
        key = str(directory).lower()
        if key in seen_dirs:
            continue
        seen_dirs.add(key)
        if not directory.is_dir():
            continue
        try:
            shortcuts = sorted(directory.rglob("*.lnk"))
        except OSError as e:
            logger.debug(f"Cannot walk shortcut folder {directory}: {e}")
            continue
        for shortcut in shortcuts:
            apps.append(InstalledApp(name=shortcut.stem, exe=str(shortcut), source=START_MENU_SOURCE))
    return apps


def collect_registry_apps() -> List[InstalledApp]:
    """DisplayName / DisplayIcon pairs from the HKLM uninstall keys."""
    if not IS_WINDOWS:
        return []

    import winreg

    apps = []
    for reg_path in UNINSTALL_REGISTRY_PATHS:
        try:
            key = winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, reg_path, 0, winreg.KEY_READ)
        except OSError as e:
            logger.debug(f"Registry path not available {reg_path}: {e}")
            continue
        with key:
            index = 0
            while True:
                try:
                    sub_name = winreg.EnumKey(key, index)
                except OSError:
                    break
                index += 1
                try:
                    with winreg.OpenKey(key, sub_name) as sub:
                        display_name = _query_value(winreg, sub, "DisplayName")
                        display_icon = _query_value(winreg, sub, "DisplayIcon")
                except OSError:
                    continue
                if display_name and display_icon:
                    exe_path = display_icon.split(",")[0].strip().strip('"')
                    apps.append(InstalledApp(name=display_name, exe=exe_path, source=REGISTRY_SOURCE))
    return apps


def _query_value(winreg, key, name: str) -> Optional[str]:
    try:
        value, _ = winreg.QueryValueEx(key, name)
    except FileNotFoundError:
        return None
    return value.strip() if isinstance(value, str) and value.strip() else None


def dedupe_apps(apps: Iterable[InstalledApp]) -> List[InstalledApp]:
    """Unique by name and target, ordered by name."""
    unique = {}
    for app in apps:
        unique.setdefault(f"{app.name}|{app.exe}", app)
    return sorted(unique.values(), key=lambda a: a.name)


def build_installed_apps_catalog(path: Path, shortcut_dirs: Optional[Iterable[Path]] = None) -> List[InstalledApp]:
    dirs = list(shortcut_dirs) if shortcut_dirs is not None else start_menu_dirs()
    apps = dedupe_apps(collect_shortcuts(dirs) + collect_registry_apps())
    write_json_file(path, apps)
    logger.info(f"Built installed apps catalog with {len(apps)} entries at {path}")
    return apps


def ensure_installed_apps_catalog(path: Path, shortcut_dirs: Optional[Iterable[Path]] = None) -> bool:
    """Build the catalog if it doesn't exist yet. Returns True when a build happened."""
    path = Path(path)
    if path.exists():
        return False
    try:
        build_installed_apps_catalog(path, shortcut_dirs)
    except OSError as e:
        logger.warning(f"Could not write installed apps catalog {path}: {e}")
        return False
    return True


async def ensure_installed_apps_catalog_async(path: Path) -> bool:
    return await asyncio.to_thread(ensure_installed_apps_catalog, path)


def load_installed_apps(path: Path) -> List[InstalledApp]:
    try:
        data = Path(path).read_bytes()
    except FileNotFoundError:
        logger.debug(f"No installed apps catalog at {path}")
        return []
    except OSError as e:
        logger.warning(f"Could not read installed apps catalog {path}: {e}")
        return []

    try:
        return decode_json(data, type=List[InstalledApp])
    except (msgspec.DecodeError, msgspec.ValidationError) as e:
        logger.warning(f"Ignoring malformed installed apps catalog {path}: {e}")
        return []
