"""
Identity resolution: every on-disk instance of a title.

For each volume (in explicit order) the resolver checks:

    <volume>/Games/<Title>
    <volume>/SteamLibrary/steamapps/common/<Title>
    <volume>/EpicGames/<Title>

A folder is an instance when its normalized key equals the query's.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from .constants import EPIC_FOLDER, GAMES_FOLDER, STEAM_LIBRARY_PARTS
from .logger import setup_logger
from .models import GameRecord, InvalidTitleError, TitleRecord
from .normalizer import title_key
from .scanner import find_cover_image, find_first_executable, list_subfolders
from .vdf_parser import VDFParser
from .volumes import order_volumes

logger = setup_logger()


class IdentityResolver:
    """
    Args:
        volumes: Volume roots to search; visited in case-insensitive order
        catalog: Normalized name -> store id, used for non-Steam folders
    """

    def __init__(self, volumes: Iterable, catalog: Optional[Dict[str, str]] = None):
        self.volumes = order_volumes(volumes)
        self.catalog = catalog or {}

    def resolve(self, title: Union[TitleRecord, str]) -> List[TitleRecord]:
        """
        All instances of ``title`` across every volume.

        Never returns an empty list: when nothing matches, the input record
        itself is returned as the only element. A plain name is wrapped in a
        GameRecord first; ``None`` raises InvalidTitleError.
        """
        if title is None:
            raise InvalidTitleError("A title or title name is required")
        record = GameRecord(name=title) if isinstance(title, str) else title
        key = title_key(record.name)
        if not key:
            return [record]

        instances: List[TitleRecord] = []
        seen_folders: Set[str] = set()
        seen_store_ids: Set[str] = set()

        for volume in self.volumes:
            for folder in self._matching_folders(volume / GAMES_FOLDER, key):
                if self._first_sighting(folder, seen_folders):
                    instances.append(self._make_instance(folder, self.catalog.get(key)))

            steamapps = volume.joinpath(*STEAM_LIBRARY_PARTS)
            for folder in self._matching_folders(steamapps / "common", key):
                if not self._first_sighting(folder, seen_folders):
                    continue
                store_id = VDFParser.find_app_id_for_folder(steamapps, folder.name)
                if store_id:
                    if store_id in seen_store_ids:
                        logger.debug(f"Store id {store_id} already resolved, skipping mirror {folder}")
                        continue
                    seen_store_ids.add(store_id)
                instances.append(self._make_instance(folder, store_id))

            for folder in self._matching_folders(volume / EPIC_FOLDER, key):
                if self._first_sighting(folder, seen_folders):
                    instances.append(self._make_instance(folder, self.catalog.get(key)))

        if not instances:
            logger.debug(f"No instances found for '{record.name}', using the input record")
            return [record]

        logger.debug(f"Resolved '{record.name}' to {len(instances)} instance(s)")
        return instances

    @staticmethod
    def _matching_folders(root: Path, key: str) -> List[Path]:
        return [folder for folder in list_subfolders(root) if title_key(folder.name) == key]

    @staticmethod
    def _first_sighting(folder: Path, seen: Set[str]) -> bool:
        folder_key = str(folder).lower()
        if folder_key in seen:
            return False
        seen.add(folder_key)
        return True

    @staticmethod
    def _make_instance(folder: Path, store_id: Optional[str]) -> GameRecord:
        exe = find_first_executable(folder)
        cover = find_cover_image(folder)
        return GameRecord(
            name=folder.name,
            folder=str(folder),
            exe=str(exe) if exe else None,
            image_path=str(cover) if cover else None,
            store_id=store_id,
        )
