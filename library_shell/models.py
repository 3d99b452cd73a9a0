"""
msgspec-based data models for the library shell core.

This module provides:
- The tagged TitleRecord variant (one Struct per title kind)
- Executable candidates, preference and playtime records
- Persisted catalog shapes (installed apps, store catalog)
- Convenience functions for JSON encoding/decoding and whole-file writes
"""

import os
from enum import StrEnum
from pathlib import Path
from typing import ClassVar, Optional, Tuple, List

import msgspec

from .constants import NEVER_UNLOCKED


class InvalidTitleError(ValueError):
    """Raised when an operation that needs a title is given none."""


def require_title(name: Optional[str]) -> str:
    if name is None or not str(name).strip():
        raise InvalidTitleError("A title name is required")
    return str(name)


# =============================================================================
# Global Encoders/Decoders
# =============================================================================

json_encoder = msgspec.json.Encoder()
json_decoder = msgspec.json.Decoder()


def encode_json(obj) -> bytes:
    """
    Encode object to JSON bytes using msgspec.

    Args:
        obj: Any msgspec.Struct or serializable object

    Returns:
        JSON as bytes
    """
    return json_encoder.encode(obj)


def decode_json(data: bytes, type=None):
    """
    Decode JSON bytes to object using msgspec.

    Args:
        data: JSON as bytes
        type: Optional msgspec type for validation

    Returns:
        Decoded object (validated if type provided)
    """
    if type:
        return msgspec.json.decode(data, type=type)
    return json_decoder.decode(data)


def format_json(data: bytes, indent: int = 2) -> bytes:
    """Format JSON with indentation for pretty-printing."""
    return msgspec.json.format(data, indent=indent)


def write_json_file(path: Path, obj) -> None:
    """Rewrite a JSON file wholesale (pretty-printed), creating parent folders."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_bytes(format_json(encode_json(obj)))
    os.replace(tmp_path, path)


# =============================================================================
# Title records (tagged variant)
# =============================================================================

class TitleKind(StrEnum):
    GAME = "game"
    REPACK = "repack"
    APP = "app"
    MUSIC = "music"
    PICTURE = "picture"
    VIDEO = "video"


class TitleRecord(msgspec.Struct, frozen=True, tag_field="kind"):
    """
    A single sighting of a title.

    Immutable once constructed; a rescan produces new records instead of
    mutating old ones. Use ``msgspec.structs.replace`` to derive a copy.
    """
    kind: ClassVar[TitleKind]

    name: str
    folder: Optional[str] = None
    image_path: Optional[str] = None

    @property
    def launch_target(self) -> Optional[str]:
        return None


class GameRecord(TitleRecord, frozen=True, tag=TitleKind.GAME.value):
    kind: ClassVar[TitleKind] = TitleKind.GAME

    exe: Optional[str] = None
    store_id: Optional[str] = None
    emulator: Optional[str] = None
    roms: Tuple[str, ...] = ()
    default_rom: Optional[str] = None
    is_rom: bool = False

    @property
    def launch_target(self) -> Optional[str]:
        return self.exe


class RepackRecord(TitleRecord, frozen=True, tag=TitleKind.REPACK.value):
    kind: ClassVar[TitleKind] = TitleKind.REPACK

    exe: Optional[str] = None

    @property
    def launch_target(self) -> Optional[str]:
        return self.exe


class AppRecord(TitleRecord, frozen=True, tag=TitleKind.APP.value):
    kind: ClassVar[TitleKind] = TitleKind.APP

    target: Optional[str] = None
    source: Optional[str] = None
    is_game: bool = False

    @property
    def launch_target(self) -> Optional[str]:
        return self.target


class MusicRecord(TitleRecord, frozen=True, tag=TitleKind.MUSIC.value):
    kind: ClassVar[TitleKind] = TitleKind.MUSIC

    path: Optional[str] = None

    @property
    def launch_target(self) -> Optional[str]:
        return self.path


class PictureRecord(TitleRecord, frozen=True, tag=TitleKind.PICTURE.value):
    kind: ClassVar[TitleKind] = TitleKind.PICTURE

    path: Optional[str] = None

    @property
    def launch_target(self) -> Optional[str]:
        return self.path


class VideoRecord(TitleRecord, frozen=True, tag=TitleKind.VIDEO.value):
    kind: ClassVar[TitleKind] = TitleKind.VIDEO

    path: Optional[str] = None

    @property
    def launch_target(self) -> Optional[str]:
        return self.path


AnyTitle = GameRecord | RepackRecord | AppRecord | MusicRecord | PictureRecord | VideoRecord


# =============================================================================
# Executable candidates
# =============================================================================

class CandidateKind(StrEnum):
    EXECUTABLE = "executable"
    STORE_URI = "store_uri"
    STORE_MARKER = "store_marker"


class ExeCandidate(msgspec.Struct, frozen=True):
    """A launch target: a real executable path or a synthetic store-launch entry."""
    kind: CandidateKind
    value: str
    store_id: Optional[str] = None

    @property
    def key(self) -> str:
        """Identity used for de-duplication (paths compare case-insensitively)."""
        if self.kind == CandidateKind.EXECUTABLE:
            return os.path.normcase(os.path.normpath(self.value)).lower()
        return f"{self.kind}:{self.value}"

    @property
    def is_store_launch(self) -> bool:
        return self.kind != CandidateKind.EXECUTABLE


# =============================================================================
# Persisted records
# =============================================================================

class PreferenceRecord(msgspec.Struct, rename="camel"):
    """Per-title launch preferences (settings file value)."""
    preferred_exe: Optional[str] = None
    preferred_rom: Optional[str] = None
    preferred_url: Optional[str] = None


class PlaytimeRecord(msgspec.Struct):
    name: str
    platform: str
    seconds: int = 0


class InstalledApp(msgspec.Struct, rename="pascal"):
    """Entry of the pre-built installed-apps catalog."""
    name: str
    exe: str
    image_path: Optional[str] = ""
    source: Optional[str] = ""
    is_game: bool = False


class StoreCatalogEntry(msgspec.Struct):
    appid: int
    name: Optional[str] = None


class StoreAppList(msgspec.Struct):
    apps: List[StoreCatalogEntry] = []


class StoreCatalog(msgspec.Struct):
    """Cached full store catalog: ``{"applist": {"apps": [...]}}``."""
    applist: StoreAppList = msgspec.field(default_factory=StoreAppList)


class StoreSearchItem(msgspec.Struct):
    id: int
    name: Optional[str] = None


class StoreSearchResponse(msgspec.Struct):
    items: List[StoreSearchItem] = []


class AchievementDefinition(msgspec.Struct, frozen=True):
    """Read-only view of one item of a per-title definition file."""
    name: str
    criteria: str
    unlocked_at: Optional[str] = None

    @property
    def is_unlocked(self) -> bool:
        return bool(self.unlocked_at) and self.unlocked_at != NEVER_UNLOCKED
