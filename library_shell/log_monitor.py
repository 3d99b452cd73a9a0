"""
Emulator log monitor.

Per play session state machine:

    AWAITING_LOG_FILE --log found--> TAILING --cancel--> STOPPED
            |                                              ^
            +------------- discovery attempts used --------+

``tick()`` advances the machine by one step and never sleeps; ``run()``
is the driver loop that ticks, waits a fixed interval and checks for
cancellation between steps. Tests drive ``tick()`` directly with an
in-memory reader.
"""

import asyncio
import threading
from enum import StrEnum
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Set, Tuple

import aiofiles
import aiofiles.os

from . import task_registry
from .achievements import AchievementTracker, achievement_dir
from .collaborators import ProgressCallback
from .config import ConfigSection, config_manager
from .constants import SWITCH_PLATFORM
from .logger import setup_logger
from .models import require_title

logger = setup_logger()

LOG_FILE_FIELD = "LogFile"
LOG_POSITION_FIELD = "LogPosition"


class MonitorState(StrEnum):
    AWAITING_LOG_FILE = "awaiting_log_file"
    TAILING = "tailing"
    STOPPED = "stopped"


class LogReader(Protocol):
    async def latest_log(self) -> Optional[str]:
        """Path of the most recently created matching log, if any."""
        ...

    async def size(self, path: str) -> int:
        ...

    async def read_from(self, path: str, offset: int) -> Tuple[List[str], int]:
        """Complete lines appended after ``offset`` and the offset after them."""
        ...


class FileLogReader:
    """Reads emulator logs from a folder with aiofiles."""

    def __init__(self, log_dir: Path, pattern: str):
        self.log_dir = Path(log_dir)
        self.pattern = pattern

    def _latest_log_sync(self) -> Optional[str]:
        newest = None
        newest_time = None
        try:
            candidates = list(self.log_dir.glob(self.pattern))
        except OSError as e:
            logger.debug(f"Cannot list logs in {self.log_dir}: {e}")
            return None
        for candidate in candidates:
            try:
                stat = candidate.stat()
            except OSError:
                continue
            created = getattr(stat, "st_birthtime", stat.st_ctime)
            if newest_time is None or created > newest_time:
                newest, newest_time = candidate, created
        return str(newest) if newest else None

    async def latest_log(self) -> Optional[str]:
        return await asyncio.to_thread(self._latest_log_sync)

    async def size(self, path: str) -> int:
        stat = await aiofiles.os.stat(path)
        return stat.st_size

    async def read_from(self, path: str, offset: int) -> Tuple[List[str], int]:
        async with aiofiles.open(path, "rb") as f:
            await f.seek(offset)
            data = await f.read()

        # A trailing partial line is left for the next read
        end = data.rfind(b"\n")
        if end < 0:
            return [], offset
        chunk = data[:end + 1]
        lines = chunk.decode("utf-8", errors="replace").splitlines()
        return lines, offset + len(chunk)


class AchievementLogMonitor:
    """
    Args:
        tracker: Evaluates lines and persists unlocks and stats
        reader: Log discovery and incremental reads
        discovery_attempts: Polls before giving up on finding a log
        discovery_interval: Seconds between discovery polls
        poll_interval: Seconds between reads while tailing
        sleep: Awaitable delay; defaults to a wait that ends early on cancel
    """

    def __init__(
        self,
        tracker: AchievementTracker,
        reader: LogReader,
        discovery_attempts: int = 50,
        discovery_interval: float = 0.1,
        poll_interval: float = 0.5,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.tracker = tracker
        self.reader = reader
        self.discovery_attempts = discovery_attempts
        self.discovery_interval = discovery_interval
        self.poll_interval = poll_interval
        self._sleep = sleep

        self.state = MonitorState.AWAITING_LOG_FILE
        self.log_path: Optional[str] = None
        self.offset = 0
        self.attempts = 0
        self._cancelled = threading.Event()
        self._wakeup: Optional[asyncio.Event] = None
        # Logs already tailed; a late write must not pull the monitor back
        self._abandoned: Set[str] = set()

    @property
    def title(self) -> str:
        return self.tracker.title

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        if self._wakeup is not None:
            self._wakeup.set()

    def stop(self) -> None:
        if self.state != MonitorState.STOPPED:
            logger.debug(f"Log monitor for '{self.title}' stopped")
        self.state = MonitorState.STOPPED

    async def tick(self) -> MonitorState:
        """Advance one step and return the new state."""
        if self.cancelled:
            self.stop()
        elif self.state == MonitorState.AWAITING_LOG_FILE:
            await self._discover()
        elif self.state == MonitorState.TAILING:
            await self._tail()
        return self.state

    async def run(self) -> MonitorState:
        """Drive the machine until it stops."""
        logger.debug(f"Log monitor for '{self.title}' started")
        try:
            while self.state != MonitorState.STOPPED:
                await self.tick()
                if self.state == MonitorState.STOPPED:
                    break
                interval = (
                    self.discovery_interval
                    if self.state == MonitorState.AWAITING_LOG_FILE
                    else self.poll_interval
                )
                await self._wait(interval)
        finally:
            self.stop()
        return self.state

    async def _wait(self, interval: float) -> None:
        if self._sleep is not None:
            await self._sleep(interval)
            return
        if self._wakeup is None:
            self._wakeup = asyncio.Event()
            if self.cancelled:
                self._wakeup.set()
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass

    async def _discover(self) -> None:
        self.attempts += 1
        log_path = await self.reader.latest_log()
        if log_path:
            self._open(log_path)
            return
        if self.attempts >= self.discovery_attempts:
            logger.debug(f"No log file appeared for '{self.title}' after {self.attempts} attempts")
            self.stop()

    def _open(self, log_path: str, resume: bool = True) -> None:
        self.log_path = log_path
        self.offset = 0
        if resume:
            stats = self.tracker.load_stats()
            position = stats.get(LOG_POSITION_FIELD)
            if (stats.get(LOG_FILE_FIELD) == log_path
                    and isinstance(position, int) and not isinstance(position, bool) and position > 0):
                self.offset = position
        self.state = MonitorState.TAILING
        logger.info(f"Monitoring log {log_path} for '{self.title}' from offset {self.offset}")

    async def _tail(self) -> None:
        try:
            latest = await self.reader.latest_log()
            if latest and latest != self.log_path and latest not in self._abandoned:
                logger.info(f"Log rotated for '{self.title}': {self.log_path} -> {latest}")
                self._abandoned.add(self.log_path)
                self._open(latest, resume=False)

            size = await self.reader.size(self.log_path)
            if size < self.offset:
                logger.info(f"Log {self.log_path} shrank below offset {self.offset}, reading from start")
                self.offset = 0
            if size == self.offset:
                return

            lines, new_offset = await self.reader.read_from(self.log_path, self.offset)
        except OSError as e:
            # Locked, not yet flushed or briefly missing: try again next tick
            logger.debug(f"Log read error for '{self.title}': {e}")
            return

        for line in lines:
            if self.cancelled:
                break
            self.tracker.process_line(line)

        if new_offset > self.offset:
            self.offset = new_offset
            self.tracker.update_stats(**{LOG_FILE_FIELD: self.log_path, LOG_POSITION_FIELD: self.offset})


# =============================================================================
# One monitor per title
# =============================================================================

class MonitorRegistry:
    """Keeps at most one running monitor per title."""

    def __init__(self):
        self._lock = threading.Lock()
        # Serializes start/stop so concurrent starts for a title cannot interleave
        self._sessions = asyncio.Lock()
        self._running: Dict[str, Tuple[AchievementLogMonitor, asyncio.Task]] = {}

    @staticmethod
    def _key(title: str) -> str:
        return require_title(title).lower()

    async def start(self, monitor: AchievementLogMonitor) -> asyncio.Task:
        """Cancel and await any monitor already running for the title, then start ``monitor``."""
        async with self._sessions:
            await self._stop(monitor.title)
            task = task_registry.spawn(monitor.run(), name=f"achievement-monitor:{monitor.title}")
            with self._lock:
                self._running[self._key(monitor.title)] = (monitor, task)
            return task

    async def stop(self, title: str) -> bool:
        async with self._sessions:
            return await self._stop(title)

    async def _stop(self, title: str) -> bool:
        with self._lock:
            entry = self._running.pop(self._key(title), None)
        if entry is None:
            return False
        monitor, task = entry
        monitor.cancel()
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=5.0)
        except asyncio.TimeoutError:
            task.cancel()
            logger.warning(f"Log monitor for '{title}' did not stop in time; task cancelled")
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
        except Exception as e:
            logger.error(f"Log monitor for '{title}' failed: {e}", exc_info=True)
        return True

    async def stop_all(self) -> None:
        async with self._sessions:
            with self._lock:
                titles = [monitor.title for monitor, _ in self._running.values()]
            for title in titles:
                await self._stop(title)

    def get(self, title: str) -> Optional[AchievementLogMonitor]:
        with self._lock:
            entry = self._running.get(self._key(title))
        return entry[0] if entry else None


def clear_logs(log_dir: Path, pattern: str = "*.log") -> int:
    """Delete stale logs so discovery picks up the fresh one. Returns the count removed."""
    log_dir = Path(log_dir)
    if not log_dir.is_dir():
        logger.debug(f"Logs directory does not exist: {log_dir}")
        return 0
    removed = 0
    for log_file in log_dir.glob(pattern):
        try:
            log_file.unlink()
            removed += 1
        except OSError as e:
            logger.debug(f"Failed to delete log {log_file}: {e}")
    return removed


def create_monitor(
    title: str,
    platform: str = SWITCH_PLATFORM,
    on_progress: Optional[ProgressCallback] = None,
    line_gate: Optional[Sequence[str]] = None,
) -> AchievementLogMonitor:
    """Monitor wired to the configured account, log folder and intervals."""
    tracker = AchievementTracker(
        title,
        achievement_dir(config_manager.get_account_dir(), platform, title),
        on_progress=on_progress,
        line_gate=line_gate,
    )
    reader = FileLogReader(
        config_manager.get_log_dir(),
        config_manager[ConfigSection.MONITOR].get("log_pattern"),
    )
    return AchievementLogMonitor(
        tracker,
        reader,
        discovery_attempts=config_manager.get_int(ConfigSection.MONITOR, "discovery_attempts"),
        discovery_interval=config_manager.get_float(ConfigSection.MONITOR, "discovery_interval"),
        poll_interval=config_manager.get_float(ConfigSection.MONITOR, "poll_interval"),
    )
