"""
Cumulative play time per (title, platform).

Stored as plain text, one ``name, platform, seconds`` record per line, and
rewritten wholesale on every update.
"""

import os
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .logger import setup_logger
from .models import PlaytimeRecord

logger = setup_logger()

PLAYTIME_FILE_NAME = "Total.Playtime.txt"


def parse_playtime_line(line: str) -> Optional[PlaytimeRecord]:
    # Titles may contain commas; platform and seconds never do
    parts = line.rsplit(",", 2)
    if len(parts) != 3:
        return None
    name, platform, seconds = (p.strip() for p in parts)
    if not name:
        return None
    try:
        return PlaytimeRecord(name=name, platform=platform, seconds=int(seconds))
    except ValueError:
        return None


def format_playtime_line(record: PlaytimeRecord) -> str:
    return f"{record.name}, {record.platform}, {record.seconds}"


class PlaytimeStore:
    def __init__(self, path: Path):
        self.path = Path(path)

    def load_all(self) -> Dict[Tuple[str, str], PlaytimeRecord]:
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Could not read playtime file {self.path}: {e}")
            return {}

        records = {}
        for line in lines:
            record = parse_playtime_line(line)
            if record is None:
                if line.strip():
                    logger.debug(f"Skipping malformed playtime line: {line!r}")
                continue
            records.setdefault((record.name, record.platform), record)
        return records

    def get_seconds(self, name: str, platform: str) -> int:
        record = self.load_all().get((name, platform))
        return record.seconds if record else 0

    def set_seconds(self, name: str, platform: str, seconds: int) -> None:
        records = self.load_all()
        records[(name, platform)] = PlaytimeRecord(name=name, platform=platform, seconds=max(0, int(seconds)))
        self._write(list(records.values()))

    def add_seconds(self, name: str, platform: str, seconds: int) -> int:
        """Add to the running total and return the new total."""
        total = self.get_seconds(name, platform) + max(0, int(seconds))
        self.set_seconds(name, platform, total)
        return total

    def _write(self, records: List[PlaytimeRecord]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_name(self.path.name + ".tmp")
            tmp_path.write_text("\n".join(format_playtime_line(r) for r in records) + "\n", encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write playtime file {self.path}: {e}")


class PlaySession:
    """
    Times one play session and adds the whole seconds to the store on stop.

    ``clock`` defaults to :func:`time.monotonic`.
    """

    def __init__(self, store: PlaytimeStore, name: str, platform: str,
                 clock: Callable[[], float] = time.monotonic):
        self.store = store
        self.name = name
        self.platform = platform
        self._clock = clock
        self._started_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        if self._started_at is None:
            self._started_at = self._clock()

    def stop(self) -> int:
        """End the session; returns the seconds recorded for it."""
        if self._started_at is None:
            return 0
        elapsed = int(self._clock() - self._started_at)
        self._started_at = None
        total = self.store.add_seconds(self.name, self.platform, elapsed)
        logger.info(f"Play session for '{self.name}' ({self.platform}): {elapsed}s, total {total}s")
        return elapsed
