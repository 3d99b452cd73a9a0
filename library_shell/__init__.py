from .version import __version__
from .config import config_manager
from .logger import setup_logger
from .models import (
    AppRecord,
    CandidateKind,
    ExeCandidate,
    GameRecord,
    InvalidTitleError,
    MusicRecord,
    PictureRecord,
    PreferenceRecord,
    RepackRecord,
    TitleKind,
    TitleRecord,
    VideoRecord,
)
from .normalizer import normalize_title, title_key, strip_repack_tokens
from .exclusions import ExclusionRules
from .scanner import LibraryScanner, LibraryQuery, RepackIndex, SortOrder, apply_filters
from .identity import IdentityResolver
from .store_lookup import StoreIdResolver
from .executables import ExecutableCandidateEnumerator, detect_launch_action
from .settings_store import SettingsStore
from .playtime import PlaySession, PlaytimeStore
from .achievements import AchievementTracker
from .log_monitor import AchievementLogMonitor, MonitorRegistry, MonitorState
from .launcher import TitleLauncher

__all__ = [
    "__version__",
    "config_manager",
    "setup_logger",
    "AppRecord",
    "CandidateKind",
    "ExeCandidate",
    "GameRecord",
    "InvalidTitleError",
    "MusicRecord",
    "PictureRecord",
    "PreferenceRecord",
    "RepackRecord",
    "TitleKind",
    "TitleRecord",
    "VideoRecord",
    "normalize_title",
    "title_key",
    "strip_repack_tokens",
    "ExclusionRules",
    "LibraryScanner",
    "LibraryQuery",
    "RepackIndex",
    "SortOrder",
    "apply_filters",
    "IdentityResolver",
    "StoreIdResolver",
    "ExecutableCandidateEnumerator",
    "detect_launch_action",
    "SettingsStore",
    "PlaySession",
    "PlaytimeStore",
    "AchievementTracker",
    "AchievementLogMonitor",
    "MonitorRegistry",
    "MonitorState",
    "TitleLauncher",
]
