"""
Store identifier lookup.

Three tiers, first hit wins:

1. the cached full store catalog (exact normalized-name match)
2. folders under known PC storefront library names on every volume whose
   name matches; each hit is re-queried online by its folder name
3. a live store search for the name itself

Failures at any tier are logged and treated as "not found".
"""

import asyncio
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import aiohttp
import msgspec

from . import task_registry
from .collaborators import ResolveStoreIdentifierOnline, StoreIdCallback
from .config import ConfigSection, config_manager
from .constants import PC_LIBRARY_FOLDERS
from .logger import setup_logger
from .models import StoreCatalog, StoreCatalogEntry, StoreSearchResponse, decode_json
from .normalizer import strip_repack_tokens, title_key
from .scanner import list_subfolders
from .volumes import order_volumes

logger = setup_logger()


def _match_keys(name: str) -> Tuple[str, str]:
    return title_key(name), strip_repack_tokens(name)


def load_store_catalog(path: Optional[Path]) -> Dict[str, str]:
    """
    Map of normalized name -> store id from the cached catalog file.

    Accepts the ``{"applist": {"apps": [...]}}`` shape and a bare array of
    ``{"appid", "name"}`` entries. Missing or malformed files give ``{}``.
    """
    if path is None:
        return {}
    try:
        data = Path(path).read_bytes()
    except FileNotFoundError:
        logger.debug(f"No store catalog at {path}")
        return {}
    except OSError as e:
        logger.warning(f"Could not read store catalog {path}: {e}")
        return {}

    try:
        if data.lstrip().startswith(b"["):
            apps = decode_json(data, type=List[StoreCatalogEntry])
        else:
            apps = decode_json(data, type=StoreCatalog).applist.apps
    except msgspec.DecodeError as e:
        logger.warning(f"Ignoring malformed store catalog {path}: {e}")
        return {}

    catalog = {}
    for app in apps:
        if app.name and app.name.strip():
            catalog.setdefault(title_key(app.name), str(app.appid))
    logger.debug(f"Loaded {len(catalog)} store catalog entries from {path}")
    return catalog


async def search_store_online(
    name: str,
    search_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Optional[str]:
    """Query the public store search and return the id of an exact normalized match."""
    if search_url is None:
        search_url = config_manager[ConfigSection.STORE].get("search_url")
    if timeout is None:
        timeout = config_manager.get_float(ConfigSection.STORE, "timeout")

    keys = _match_keys(name)
    params = {"term": name, "cc": "us", "l": "en"}
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                search_url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=timeout)
            ) as response:
                if response.status != 200:
                    logger.debug(f"Store search for '{name}' failed: HTTP {response.status}")
                    return None
                payload = decode_json(await response.read(), type=StoreSearchResponse)
    except asyncio.TimeoutError:
        logger.debug(f"Timeout searching store for '{name}'")
        return None
    except aiohttp.ClientError as e:
        logger.debug(f"Store search for '{name}' failed: {e}")
        return None
    except msgspec.DecodeError as e:
        logger.warning(f"Malformed store search response for '{name}': {e}")
        return None

    for item in payload.items:
        if item.name and title_key(item.name) in keys:
            return str(item.id)
    return None


class StoreIdResolver:
    """
    Resolves a title name to a store identifier.

    Args:
        volumes: Volume roots searched by the folder tier, in case-insensitive order
        catalog: Normalized name -> id map (see :func:`load_store_catalog`)
        online_resolver: Coroutine function used for live lookups;
            defaults to :func:`search_store_online`
    """

    def __init__(
        self,
        volumes: Iterable = (),
        catalog: Optional[Dict[str, str]] = None,
        online_resolver: Optional[ResolveStoreIdentifierOnline] = None,
    ):
        self.volumes = order_volumes(volumes)
        self.catalog = catalog or {}
        self.online_resolver = online_resolver or search_store_online

    def lookup_catalog(self, name: str) -> Optional[str]:
        for key in _match_keys(name):
            store_id = self.catalog.get(key)
            if store_id:
                return store_id
        return None

    def find_library_folders(self, name: str) -> List[str]:
        """Folder names under storefront library folders matching ``name``."""
        keys = _match_keys(name)
        matches = []
        for volume in self.volumes:
            for library in PC_LIBRARY_FOLDERS:
                for folder in list_subfolders(volume / library):
                    if title_key(folder.name) in keys:
                        matches.append(folder.name)
        return matches

    async def _query_online(self, name: str) -> Optional[str]:
        try:
            return await self.online_resolver(name)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug(f"Online store lookup for '{name}' failed: {e}")
            return None

    async def resolve_store_id(self, name: str) -> Optional[str]:
        if not name or not name.strip():
            return None

        store_id = self.lookup_catalog(name)
        if store_id:
            logger.debug(f"Store id for '{name}' found in catalog: {store_id}")
            return store_id

        folder_names = await asyncio.to_thread(self.find_library_folders, name)
        for folder_name in folder_names:
            store_id = await self._query_online(folder_name)
            if store_id:
                logger.debug(f"Store id for '{name}' found via library folder '{folder_name}': {store_id}")
                return store_id

        store_id = await self._query_online(name)
        if store_id:
            logger.debug(f"Store id for '{name}' found by store search: {store_id}")
        else:
            logger.debug(f"No store id found for '{name}'")
        return store_id

    def resolve_in_background(self, name: str, callback: StoreIdCallback) -> asyncio.Task:
        """
        Start a lookup without waiting for it; ``callback`` receives the
        result (``None`` when not found). Must be called from a running loop.
        """
        async def _run():
            store_id = await self.resolve_store_id(name)
            try:
                callback(store_id)
            except Exception as e:
                logger.error(f"Store id callback for '{name}' failed: {e}", exc_info=True)
            return store_id

        return task_registry.spawn(_run(), name=f"store-id:{name}")
