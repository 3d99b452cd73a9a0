from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from library_shell import task_registry  # noqa: E402
from library_shell.constants import NEVER_UNLOCKED  # noqa: E402
from library_shell.models import format_json, encode_json  # noqa: E402


class MemoryLogReader:
    """In-memory stand-in for FileLogReader. ``path`` is the newest log."""

    def __init__(self, path="memory.log", available=True):
        self.path = path
        self.available = available
        self.logs = {path: b""}
        self.reads = 0
        self.fail_next = 0

    @property
    def data(self):
        return self.logs[self.path]

    @data.setter
    def data(self, value):
        self.logs[self.path] = value

    def append(self, text, path=None):
        path = path or self.path
        self.logs[path] = self.logs.get(path, b"") + text.encode("utf-8")

    def rotate(self, path):
        self.path = path
        self.logs.setdefault(path, b"")

    async def latest_log(self):
        return self.path if self.available else None

    async def size(self, path):
        return len(self.logs.get(path, b""))

    async def read_from(self, path, offset):
        if self.fail_next:
            self.fail_next -= 1
            raise PermissionError("log file is locked")
        self.reads += 1
        pending = self.logs.get(path, b"")[offset:]
        end = pending.rfind(b"\n")
        if end < 0:
            return [], offset
        chunk = pending[:end + 1]
        return chunk.decode("utf-8").splitlines(), offset + len(chunk)


def write_json(path, obj):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(format_json(encode_json(obj)))
    return path


def make_exe(path):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"MZ")
    return path


@pytest.fixture
def memory_reader():
    return MemoryLogReader()


@pytest.fixture
def achievement_folder(tmp_path):
    """Definition file for 'Kart Racer' with three achievements, none unlocked."""
    folder = tmp_path / "Achievements" / "Nintendo - Switch" / "Kart Racer"
    write_json(folder / "Kart Racer.json", {
        "Items": [
            {"Name": "Speed Demon", "Criteria": "lap record", "DateUnlocked": NEVER_UNLOCKED},
            {"Name": "Gold Cup", "Criteria": "1st Mushroom Cup", "DateUnlocked": NEVER_UNLOCKED},
            {"Title": "Drifter", "desc": "mini turbo boost", "DateUnlocked": NEVER_UNLOCKED},
        ],
        "Translations": {"MT": "mini turbo", "MTB": "mini turbo boost"},
        "Source": "hand written",
    })
    return folder


@pytest.fixture(autouse=True)
def clean_task_registry():
    task_registry.reset_shutdown_state()
    yield
    task_registry.reset_shutdown_state()
