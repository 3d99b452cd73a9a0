"""
Launching a chosen candidate through host-supplied collaborators.

The core never starts processes itself. Store candidates are handed to
``launch_process`` as their ``steam://`` URI. Executables get their saved
``<exe>.args`` and run from their own folder, after a ``before.script``
in the title folder (when present) has succeeded. Play time is recorded
around executable launches.
"""

import os
import shlex
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

from .collaborators import LaunchProcess, RunPreLaunchScript
from .executables import STORE_URI_TEMPLATE, parse_store_marker
from .logger import setup_logger
from .models import ExeCandidate, TitleRecord, require_title
from .platforms import detect_platform
from .playtime import PlaySession, PlaytimeStore
from .settings_store import load_exe_arguments

logger = setup_logger()

PRE_LAUNCH_SCRIPT = "before.script"


def split_arguments(arguments: str) -> List[str]:
    # Windows paths keep their backslashes
    try:
        return shlex.split(arguments or "", posix=os.name != "nt")
    except ValueError as e:
        logger.warning(f"Unbalanced quotes in launch arguments {arguments!r}: {e}")
        return (arguments or "").split()


def store_uri_for(value: str) -> Optional[str]:
    """The store URI to open for a store candidate value, or None for executables."""
    if value.startswith("steam://"):
        return value
    marker = parse_store_marker(value)
    if marker is None:
        return None
    return STORE_URI_TEMPLATE.format(store_id=marker[0])


class TitleLauncher:
    """
    Args:
        launch_process: Starts a path with arguments and working directory,
            returning its exit code
        run_pre_launch_script: Runs ``before.script``; a falsy result
            cancels the launch
        playtime: Store that receives the session's seconds
        clock: Passed to :class:`PlaySession`
    """

    def __init__(
        self,
        launch_process: LaunchProcess,
        run_pre_launch_script: Optional[RunPreLaunchScript] = None,
        playtime: Optional[PlaytimeStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.launch_process = launch_process
        self.run_pre_launch_script = run_pre_launch_script
        self.playtime = playtime
        self.clock = clock

    def launch(self, record: TitleRecord, candidate: Union[ExeCandidate, str]) -> Optional[int]:
        """Launch ``candidate`` for ``record``; returns the exit code, or None if nothing ran."""
        require_title(record.name if record is not None else None)
        value = candidate.value if isinstance(candidate, ExeCandidate) else str(candidate)

        uri = store_uri_for(value)
        if uri is not None:
            logger.info(f"Launching '{record.name}' through the store: {uri}")
            return self._start(uri, [], None)

        exe = Path(value)
        if not exe.is_file():
            logger.warning(f"Executable not found for '{record.name}': {exe}")
            return None

        if not self._pre_launch_ok(record):
            logger.info(f"Pre-launch script failed for '{record.name}'; launch cancelled")
            return None

        args = split_arguments(load_exe_arguments(exe))
        session = None
        if self.playtime is not None:
            session = PlaySession(self.playtime, record.name, detect_platform(record), clock=self.clock)
            session.start()
        try:
            return self._start(str(exe), args, str(exe.parent))
        finally:
            if session is not None:
                session.stop()

    def _pre_launch_ok(self, record: TitleRecord) -> bool:
        if not record.folder or self.run_pre_launch_script is None:
            return True
        script = Path(record.folder) / PRE_LAUNCH_SCRIPT
        if not script.is_file():
            return True
        return bool(self.run_pre_launch_script(str(script)))

    def _start(self, path: str, args: List[str], working_dir: Optional[str]) -> Optional[int]:
        try:
            return self.launch_process(path, args, working_dir)
        except OSError as e:
            logger.error(f"Failed to launch {path}: {e}")
            return None
