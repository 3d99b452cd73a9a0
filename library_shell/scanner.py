"""
Library scanner.

Walks every volume for the folder conventions below and emits immutable
title records:

    <volume>/Games/<Title>/...                  one GameRecord per folder
    <volume>/Repacks/<Title>/...                one RepackRecord per normalized title
    <volume>/Music|Pictures|Videos/*.<ext>      one record per file

Enumeration failures (permission denied, vanished paths) only empty the
root that failed; the rest of the scan carries on.
"""

import os
from enum import StrEnum
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence

import msgspec

from .constants import (
    COVER_EXTENSIONS,
    EXECUTABLE_EXTENSIONS,
    GAMES_FOLDER,
    MEDIA_FOLDERS,
    REPACKS_FOLDER,
)
from .installed_apps import load_installed_apps
from .logger import setup_logger
from .models import (
    AnyTitle,
    AppRecord,
    GameRecord,
    MusicRecord,
    PictureRecord,
    RepackRecord,
    TitleKind,
    TitleRecord,
    VideoRecord,
)
from .normalizer import title_key
from .volumes import order_volumes

logger = setup_logger()

VERSION_UNKNOWN = "N/A"

_MEDIA_RECORDS = {
    "Music": MusicRecord,
    "Pictures": PictureRecord,
    "Videos": VideoRecord,
}


# =============================================================================
# Directory primitives
# =============================================================================

def _sorted_entries(directory) -> List[os.DirEntry]:
    """Directory entries in name order; empty on any access error."""
    try:
        with os.scandir(directory) as entries:
            return sorted(entries, key=lambda e: e.name.lower())
    except (OSError, PermissionError) as e:
        logger.debug(f"Cannot access {directory}: {e}")
        return []


def list_subfolders(root) -> List[Path]:
    folders = []
    for entry in _sorted_entries(root):
        try:
            if entry.is_dir(follow_symlinks=False):
                folders.append(Path(entry.path))
        except (OSError, PermissionError):
            continue
    return folders


def list_files(root, extensions: Iterable[str]) -> List[Path]:
    """Files directly under ``root`` with one of ``extensions``."""
    wanted = tuple(ext.lower() for ext in extensions)
    files = []
    for entry in _sorted_entries(root):
        try:
            if entry.is_file(follow_symlinks=False) and entry.name.lower().endswith(wanted):
                files.append(Path(entry.path))
        except (OSError, PermissionError):
            continue
    return files


def iter_files(root, extensions: Iterable[str]) -> Iterator[Path]:
    """
    Depth-first walk yielding matching files.

    Within a folder files come before subfolders and both are visited in
    name order, so the first hit is stable across runs.
    """
    wanted = tuple(ext.lower() for ext in extensions)
    subdirs = []
    for entry in _sorted_entries(root):
        try:
            if entry.is_file(follow_symlinks=False):
                if entry.name.lower().endswith(wanted):
                    yield Path(entry.path)
            elif entry.is_dir(follow_symlinks=False):
                subdirs.append(entry.path)
        except (OSError, PermissionError):
            continue
    for subdir in subdirs:
        yield from iter_files(subdir, wanted)


def find_first_executable(folder) -> Optional[Path]:
    return next(iter_files(folder, EXECUTABLE_EXTENSIONS), None)


def find_cover_image(folder) -> Optional[Path]:
    """First top-level image; .jpg files are preferred over .png."""
    for extension in COVER_EXTENSIONS:
        matches = list_files(folder, (extension,))
        if matches:
            return matches[0]
    return None


def read_game_version(folder) -> str:
    """Contents of the first top-level ``version*.txt``, or ``"N/A"``."""
    if not folder:
        return VERSION_UNKNOWN
    for candidate in list_files(folder, (".txt",)):
        if candidate.name.lower().startswith("version"):
            try:
                return candidate.read_text(encoding="utf-8", errors="ignore").strip() or VERSION_UNKNOWN
            except OSError as e:
                logger.debug(f"Could not read version file {candidate}: {e}")
                return VERSION_UNKNOWN
    return VERSION_UNKNOWN


# =============================================================================
# Repack index
# =============================================================================

class RepackIndex:
    """
    One repack record per normalized title.

    The first record added for a key wins; later sightings of the same key
    (another volume, different punctuation) are rejected.
    """

    def __init__(self):
        self._entries: Dict[str, RepackRecord] = {}

    def add(self, record: RepackRecord) -> bool:
        key = title_key(record.name)
        if key in self._entries:
            logger.debug(f"Skipping duplicate repack '{record.name}' ({record.folder})")
            return False
        self._entries[key] = record
        return True

    def get(self, name: str) -> Optional[RepackRecord]:
        return self._entries.get(title_key(name))

    def __contains__(self, name: str) -> bool:
        return title_key(name) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def records(self) -> List[RepackRecord]:
        return list(self._entries.values())


# =============================================================================
# Scanner
# =============================================================================

class ScanResult(msgspec.Struct):
    games: List[GameRecord] = []
    repacks: List[RepackRecord] = []
    apps: List[AppRecord] = []
    media: List[TitleRecord] = []

    def all_titles(self) -> List[AnyTitle]:
        return [*self.games, *self.repacks, *self.apps, *self.media]


class LibraryScanner:
    """Synchronous scan over a fixed, ordered set of volumes."""

    def __init__(self, volumes: Iterable, installed_apps_path: Optional[Path] = None):
        self.volumes = order_volumes(volumes)
        self.installed_apps_path = Path(installed_apps_path) if installed_apps_path else None

    def scan(self) -> ScanResult:
        result = ScanResult()
        repack_index = RepackIndex()

        for volume in self.volumes:
            result.games.extend(self.scan_games(volume))
            self.scan_repacks(volume, repack_index)
            result.media.extend(self.scan_media(volume))

        result.repacks = repack_index.records()
        if self.installed_apps_path:
            result.apps = self.load_apps(self.installed_apps_path)

        logger.info(
            f"Scan complete: {len(result.games)} games, {len(result.repacks)} repacks, "
            f"{len(result.apps)} apps, {len(result.media)} media files across {len(self.volumes)} volumes"
        )
        return result

    def scan_games(self, volume) -> List[GameRecord]:
        games = []
        for folder in list_subfolders(Path(volume) / GAMES_FOLDER):
            exe = find_first_executable(folder)
            cover = find_cover_image(folder)
            games.append(GameRecord(
                name=folder.name,
                folder=str(folder),
                exe=str(exe) if exe else None,
                image_path=str(cover) if cover else None,
            ))
        return games

    def scan_repacks(self, volume, index: RepackIndex) -> List[RepackRecord]:
        """Add this volume's repacks to ``index``; returns the ones accepted."""
        accepted = []
        for folder in list_subfolders(Path(volume) / REPACKS_FOLDER):
            if folder.name in index:
                logger.debug(f"Repack already indexed, skipping {folder}")
                continue
            exe = find_first_executable(folder)
            cover = find_cover_image(folder)
            record = RepackRecord(
                name=folder.name,
                folder=str(folder),
                exe=str(exe) if exe else None,
                image_path=str(cover) if cover else None,
            )
            if index.add(record):
                accepted.append(record)
        return accepted

    def scan_media(self, volume) -> List[TitleRecord]:
        media = []
        for folder_name, extensions in MEDIA_FOLDERS.items():
            record_type = _MEDIA_RECORDS[folder_name]
            for file_path in list_files(Path(volume) / folder_name, extensions):
                media.append(record_type(
                    name=file_path.stem,
                    folder=str(file_path.parent),
                    path=str(file_path),
                ))
        return media

    def load_apps(self, path: Path) -> List[AppRecord]:
        return [
            AppRecord(
                name=app.name,
                target=app.exe,
                image_path=app.image_path or None,
                source=app.source or None,
                is_game=app.is_game,
            )
            for app in load_installed_apps(path)
        ]


# =============================================================================
# Filtering and ordering
# =============================================================================

class SortOrder(StrEnum):
    NONE = "none"
    NAME_ASC = "A-Z"
    NAME_DESC = "Z-A"
    MOST_PLAYED = "Most Played"
    LEAST_PLAYED = "Least Played"


class LibraryQuery(msgspec.Struct, frozen=True):
    """Filter and sort selection for one view of the library."""
    kind: Optional[TitleKind] = None
    volume: Optional[str] = None
    sort: SortOrder = SortOrder.NONE


# Kinds that are not tied to a volume
_VOLUME_INDEPENDENT = frozenset({TitleKind.APP, TitleKind.REPACK})


def _comparable_path(path: str) -> str:
    return os.path.normpath(path).replace("\\", "/").lower().rstrip("/")


def _on_volume(record: TitleRecord, volume: str) -> bool:
    location = record.folder or record.launch_target
    if not location:
        return False
    root = _comparable_path(volume)
    path = _comparable_path(location)
    return path == root or path.startswith(root + "/")


def apply_filters(
    titles: Sequence[TitleRecord],
    query: LibraryQuery,
    playtime_lookup: Optional[Callable[[TitleRecord], int]] = None,
) -> List[TitleRecord]:
    """
    New ordered list of the titles selected by ``query``.

    Args:
        titles: Records to filter; left untouched
        query: Kind / volume / sort selection
        playtime_lookup: Seconds played for a record, needed by the
            played-time orders (missing means 0 for every title)

    Returns:
        Filtered and sorted list
    """
    selected = list(titles)

    if query.kind is not None:
        selected = [t for t in selected if t.kind == query.kind]

    if query.volume:
        selected = [
            t for t in selected
            if t.kind in _VOLUME_INDEPENDENT or _on_volume(t, query.volume)
        ]

    if query.sort == SortOrder.NAME_ASC:
        selected.sort(key=lambda t: t.name.lower())
    elif query.sort == SortOrder.NAME_DESC:
        selected.sort(key=lambda t: t.name.lower(), reverse=True)
    elif query.sort in (SortOrder.MOST_PLAYED, SortOrder.LEAST_PLAYED):
        lookup = playtime_lookup or (lambda _t: 0)
        selected.sort(key=lambda t: t.name.lower())
        selected.sort(key=lookup, reverse=query.sort == SortOrder.MOST_PLAYED)

    return selected
