"""
Volume enumeration.

The scanner and the identity resolver walk every ready volume. Several
"first seen wins" rules depend on the order volumes are visited, so the
order is made explicit here: case-insensitive lexicographic order of the
volume root path.
"""

from pathlib import Path
from typing import Iterable, List, Optional

import psutil

from .logger import setup_logger

logger = setup_logger()


def order_volumes(volumes: Iterable) -> List[Path]:
    """De-duplicate and sort volume roots (case-insensitive)."""
    seen = set()
    ordered = []
    for volume in volumes:
        path = Path(volume)
        key = str(path).lower()
        if key in seen:
            continue
        seen.add(key)
        ordered.append(path)
    return sorted(ordered, key=lambda p: str(p).lower())


def detect_ready_volumes() -> List[Path]:
    """Mounted volumes that are currently readable."""
    roots = []
    try:
        partitions = psutil.disk_partitions(all=False)
    except OSError as e:
        logger.warning(f"Could not enumerate disk partitions: {e}")
        return []

    for partition in partitions:
        # Empty optical / card reader drives report as 'cdrom' or have no fstype
        if "cdrom" in partition.opts or not partition.fstype:
            continue
        root = Path(partition.mountpoint)
        try:
            if root.is_dir():
                roots.append(root)
        except OSError as e:
            logger.debug(f"Skipping volume {root}: {e}")
    return order_volumes(roots)


def get_volumes(configured: Optional[Iterable] = None) -> List[Path]:
    """
    Volumes to scan: the configured list if any, otherwise auto-detected.
    Configured roots that are missing are dropped.
    """
    configured = list(configured or [])
    if not configured:
        from .config import config_manager
        configured = config_manager.get_volumes()

    if not configured:
        volumes = detect_ready_volumes()
        logger.debug(f"Auto-detected {len(volumes)} volumes")
        return volumes

    ready = []
    for volume in order_volumes(configured):
        try:
            if volume.is_dir():
                ready.append(volume)
            else:
                logger.debug(f"Configured volume not ready: {volume}")
        except OSError as e:
            logger.debug(f"Configured volume not accessible {volume}: {e}")
    return ready
