"""
Executable exclusion rules.

Loaded from a plain text file with ``Folders:`` and ``Exe's:`` / ``Exes:``
section headers, one entry per line, ``#`` comment lines ignored::

    # launchers and redistributables
    Folders:
    _CommonRedist
    Exes:
    UnityCrashHandler64.exe
"""

import threading
from pathlib import Path
from typing import FrozenSet, Iterable, Optional

import msgspec

from .logger import setup_logger

logger = setup_logger()

FOLDERS_HEADER = "folders:"
EXES_HEADERS = ("exe's:", "exes:")


class ExclusionRules(msgspec.Struct, frozen=True):
    """Case-insensitive deny lists for executable names and their parent folders."""
    folders: FrozenSet[str] = frozenset()
    exes: FrozenSet[str] = frozenset()

    @classmethod
    def parse(cls, lines: Iterable[str]) -> "ExclusionRules":
        folders = set()
        exes = set()
        section = None

        for raw_line in lines:
            line = raw_line.strip().strip('"').strip()
            if not line or line.startswith("#"):
                continue

            lowered = line.lower()
            if lowered == FOLDERS_HEADER:
                section = folders
                continue
            if lowered in EXES_HEADERS:
                section = exes
                continue

            if section is not None:
                section.add(lowered)

        return cls(folders=frozenset(folders), exes=frozenset(exes))

    @classmethod
    def load(cls, path: Optional[Path]) -> "ExclusionRules":
        """Read the exclusions file; a missing or unreadable file means no exclusions."""
        if path is None:
            return cls()
        try:
            text = Path(path).read_text(encoding="utf-8", errors="ignore")
        except FileNotFoundError:
            logger.debug(f"No exclusions file at {path}")
            return cls()
        except OSError as e:
            logger.warning(f"Could not read exclusions file {path}: {e}")
            return cls()

        rules = cls.parse(text.splitlines())
        logger.debug(
            f"Loaded exclusions from {path}: {len(rules.folders)} folders, {len(rules.exes)} executables"
        )
        return rules

    def is_excluded(self, exe_path) -> bool:
        """True when the file name or its immediate parent folder is listed."""
        path = Path(exe_path)
        if path.name.lower() in self.exes:
            return True
        return path.parent.name.lower() in self.folders


# Cached rules per exclusions file, reloaded when the file changes
_rules_cache: dict = {}
_rules_lock = threading.Lock()


def get_exclusion_rules(path: Path) -> ExclusionRules:
    """Thread-safe cached access keyed by path and modification time."""
    path = Path(path)
    try:
        mtime = path.stat().st_mtime
    except OSError:
        mtime = None

    with _rules_lock:
        cached = _rules_cache.get(path)
        if cached and cached[0] == mtime:
            return cached[1]

    rules = ExclusionRules.load(path) if mtime is not None else ExclusionRules()

    with _rules_lock:
        _rules_cache[path] = (mtime, rules)
    return rules
