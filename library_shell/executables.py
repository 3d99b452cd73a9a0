"""
Executable candidate enumeration.

Lists every plausible launch target for a resolved title: executables found
under each instance folder (minus excluded ones) plus one synthetic
store-launch pair per distinct store id.
"""

import asyncio
from enum import StrEnum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .collaborators import CandidatesCallback
from .constants import (
    EXECUTABLE_EXTENSIONS,
    GAMES_FOLDER,
    REPACKS_FOLDER,
    STORE_LAUNCH_MARKER,
)
from .exclusions import ExclusionRules
from .logger import setup_logger
from .models import CandidateKind, ExeCandidate, GameRecord, RepackRecord, TitleRecord
from .platforms import is_pc_platform
from .scanner import iter_files, list_files

logger = setup_logger()

STORE_URI_TEMPLATE = "steam://rungameid/{store_id}"
SETUP_EXE = "setup.exe"


def store_launch_pair(store_id: str, steam_exe: Optional[str] = None) -> Tuple[ExeCandidate, ExeCandidate]:
    """The direct launch URI and the ``STEAM_LAUNCH::<id>::<client>`` marker."""
    uri = ExeCandidate(
        kind=CandidateKind.STORE_URI,
        value=STORE_URI_TEMPLATE.format(store_id=store_id),
        store_id=store_id,
    )
    marker = ExeCandidate(
        kind=CandidateKind.STORE_MARKER,
        value=f"{STORE_LAUNCH_MARKER}::{store_id}::{steam_exe or ''}",
        store_id=store_id,
    )
    return uri, marker


def parse_store_marker(value: str) -> Optional[Tuple[str, Optional[str]]]:
    """``STEAM_LAUNCH::<id>::<client>`` -> (id, client or None); None for anything else."""
    if not value or not value.startswith(STORE_LAUNCH_MARKER + "::"):
        return None
    parts = value.split("::")
    if len(parts) < 2 or not parts[1]:
        return None
    steam_exe = parts[2] if len(parts) > 2 and parts[2] else None
    return parts[1], steam_exe


class ExecutableCandidateEnumerator:
    """
    Args:
        exclusions: Deny lists applied to on-disk executables
        steam_exe: Store client path embedded in the store marker
    """

    def __init__(self, exclusions: Optional[ExclusionRules] = None, steam_exe: Optional[str] = None):
        self.exclusions = exclusions or ExclusionRules()
        self.steam_exe = steam_exe

    def enumerate(self, instances: Sequence[TitleRecord]) -> List[ExeCandidate]:
        """
        Unique launch candidates for the given instances.

        The list is in discovery order; callers should treat it as a set.
        """
        candidates: List[ExeCandidate] = []
        seen: Set[str] = set()

        for instance in instances:
            for exe in self._executables(instance):
                candidate = ExeCandidate(kind=CandidateKind.EXECUTABLE, value=str(exe))
                if candidate.key in seen:
                    continue
                seen.add(candidate.key)
                candidates.append(candidate)

        store_ids: List[str] = []
        for instance in instances:
            store_id = self._store_id(instance)
            if store_id and store_id not in store_ids:
                store_ids.append(store_id)

        for store_id in store_ids:
            for candidate in store_launch_pair(store_id, self.steam_exe):
                if candidate.key not in seen:
                    seen.add(candidate.key)
                    candidates.append(candidate)

        logger.debug(
            f"Enumerated {len(candidates)} launch candidates from {len(instances)} instance(s)"
        )
        return candidates

    async def enumerate_async(
        self,
        instances: Sequence[TitleRecord],
        on_ready: Optional[CandidatesCallback] = None,
    ) -> List[ExeCandidate]:
        candidates = await asyncio.to_thread(self.enumerate, list(instances))
        if on_ready is not None:
            on_ready(candidates)
        return candidates

    def _executables(self, instance: TitleRecord) -> Iterable[Path]:
        if not instance.folder:
            return []
        folder = Path(instance.folder)
        try:
            if not folder.is_dir():
                return []
        except OSError as e:
            logger.debug(f"Cannot access instance folder {folder}: {e}")
            return []
        return [
            exe for exe in iter_files(folder, EXECUTABLE_EXTENSIONS)
            if not self.exclusions.is_excluded(exe)
        ]

    @staticmethod
    def _store_id(instance: TitleRecord) -> Optional[str]:
        if not isinstance(instance, GameRecord) or not instance.store_id:
            return None
        if instance.is_rom or not is_pc_platform(instance):
            return None
        return instance.store_id


# =============================================================================
# Launch action
# =============================================================================

class LaunchAction(StrEnum):
    PLAY = "Play"
    INSTALL = "Install"


def has_setup_exe(folder) -> bool:
    if not folder:
        return False
    return any(f.name.lower() == SETUP_EXE for f in list_files(folder, (".exe",)))


def detect_launch_action(record: TitleRecord, volumes: Iterable) -> LaunchAction:
    """
    Play when the title is installed under any ``<volume>/Games``; Install
    for a repack whose folder holds a top-level Setup.exe; Play otherwise.
    """
    in_games = False
    in_repacks = isinstance(record, RepackRecord)
    for volume in volumes:
        volume = Path(volume)
        if (volume / GAMES_FOLDER / record.name).is_dir():
            in_games = True
        if (volume / REPACKS_FOLDER / record.name).is_dir():
            in_repacks = True

    if in_games:
        return LaunchAction.PLAY
    if in_repacks and has_setup_exe(record.folder):
        return LaunchAction.INSTALL
    return LaunchAction.PLAY
