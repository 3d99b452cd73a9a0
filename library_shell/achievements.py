"""
Achievement definitions and log-driven unlock evaluation.

Per-title files live in ``<account>/Achievements/<platform>/<title>/``:

    <title>.json    {"Items": [{"Name", "Criteria", "DateUnlocked"}, ...],
                     "Translations": {...}}
    stats.json      free-form counters (UnlockedCount, LastUnlocked, ...)

Both are read and rewritten as whole documents; fields this module does
not know about are preserved.
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import msgspec

from .collaborators import ProgressCallback
from .constants import (
    LOG_LINE_MARKERS,
    NEVER_UNLOCKED,
    ORDINAL_TOKENS,
    STATS_FILE_NAME,
    STEAM_EMULATOR_SAVE_DIRS,
)
from .logger import setup_logger
from .models import AchievementDefinition, decode_json, require_title, write_json_file

logger = setup_logger()

UNLOCK_FIELD = "DateUnlocked"
NAME_FIELDS = ("Name", "Title", "name")
CRITERIA_FIELDS = ("Criteria", "desc", "Description")
ITEMS_FIELDS = ("Items", "achievements")
TRANSLATIONS_FIELD = "Translations"
EARNED_WITHOUT_TIME = "Unknown"

_REPORT_PATTERN = re.compile(r"Report:\s*(\{.*\})")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def achievement_dir(account_dir: Path, platform: str, title: str) -> Path:
    require_title(title)
    return Path(account_dir) / "Achievements" / platform / title


# =============================================================================
# Whole-document JSON access
# =============================================================================

def load_document(path: Path) -> dict:
    """JSON object at ``path``; missing, unreadable or non-object content gives ``{}``."""
    try:
        data = Path(path).read_bytes()
    except FileNotFoundError:
        return {}
    except OSError as e:
        logger.warning(f"Could not read {path}: {e}")
        return {}

    try:
        document = decode_json(data)
    except msgspec.DecodeError as e:
        logger.warning(f"Treating malformed file {path} as empty: {e}")
        return {}
    if not isinstance(document, dict):
        logger.warning(f"Treating {path} as empty: top level is not an object")
        return {}
    return document


def document_items(document: dict) -> List[dict]:
    for field in ITEMS_FIELDS:
        items = document.get(field)
        if isinstance(items, list):
            return [item for item in items if isinstance(item, dict)]
    return []


def _first_text(item: dict, fields: Sequence[str]) -> Optional[str]:
    for field in fields:
        value = item.get(field)
        if value is not None and str(value).strip():
            return str(value)
    return None


def item_name(item: dict) -> Optional[str]:
    return _first_text(item, NAME_FIELDS)


def item_is_unlocked(item: dict) -> bool:
    value = item.get(UNLOCK_FIELD)
    return bool(value) and str(value) != NEVER_UNLOCKED


def load_definitions(path: Path) -> List[AchievementDefinition]:
    """Items that have both a name and criteria text."""
    definitions = []
    for item in document_items(load_document(path)):
        name = item_name(item)
        criteria = _first_text(item, CRITERIA_FIELDS)
        if name and criteria:
            unlocked_at = item.get(UNLOCK_FIELD)
            definitions.append(AchievementDefinition(
                name=name,
                criteria=criteria,
                unlocked_at=str(unlocked_at) if unlocked_at else None,
            ))
    return definitions


def load_translations(path: Path) -> Dict[str, str]:
    """
    Log-text translation table, keyed case-insensitively.

    Accepts an object (``{"key": "value"}``) or an array of
    ``{"Key": ..., "Value": ...}`` pairs.
    """
    node = load_document(path).get(TRANSLATIONS_FIELD)
    translations = {}
    if isinstance(node, dict):
        pairs = node.items()
    elif isinstance(node, list):
        pairs = [
            (entry.get("Key"), entry.get("Value"))
            for entry in node if isinstance(entry, dict)
        ]
    else:
        return {}

    for key, value in pairs:
        if key is None or value is None:
            continue
        key, value = str(key), str(value)
        if key.strip() and value.strip():
            translations[key.lower()] = value
    return translations


def achievement_progress(items: Iterable) -> Tuple[int, int]:
    """(unlocked, total) for definition items or AchievementDefinition objects."""
    unlocked = total = 0
    for item in items:
        total += 1
        if isinstance(item, AchievementDefinition):
            unlocked += item.is_unlocked
        elif isinstance(item, dict):
            unlocked += item_is_unlocked(item)
    return unlocked, total


# =============================================================================
# Line translation and matching
# =============================================================================

def compile_translations(translations: Dict[str, str]) -> Optional[re.Pattern]:
    if not translations:
        return None
    keys = sorted(translations, key=len, reverse=True)
    return re.compile(r"\b(" + "|".join(re.escape(k) for k in keys) + r")\b", re.IGNORECASE)


def translate_line(line: str, translations: Dict[str, str], pattern: Optional[re.Pattern] = None) -> str:
    """Whole-word, longest-key-first, case-insensitive replacement."""
    if not line or not translations:
        return line
    pattern = pattern or compile_translations(translations)
    return pattern.sub(lambda m: translations[m.group(0).lower()], line)


class RaceReport(msgspec.Struct, frozen=True):
    rank: Optional[int] = None
    course: Optional[str] = None


def extract_report(line: str) -> Optional[RaceReport]:
    """Rank / course from a trailing ``Report: {...}`` payload, if any."""
    match = _REPORT_PATTERN.search(line)
    if not match:
        return None
    try:
        payload = decode_json(match.group(1).encode("utf-8"))
    except msgspec.DecodeError:
        return None
    if not isinstance(payload, dict):
        return None

    rank = payload.get("Rank")
    if isinstance(rank, bool) or not isinstance(rank, int):
        rank = None
    course = payload.get("Course")
    return RaceReport(rank=rank, course=str(course) if course is not None else None)


def required_ranks(criteria: str) -> Set[int]:
    lowered = criteria.lower()
    return {rank for token, rank in ORDINAL_TOKENS if token in lowered}


def course_matches(course: Optional[str], criteria: str) -> bool:
    """
    Loose course check: any criteria word occurs in the course name, or the
    course name occurs in the criteria. No course means no constraint.
    """
    if not course:
        return True
    course_lower = course.lower()
    criteria_lower = criteria.lower()
    if course_lower in criteria_lower:
        return True
    return any(word in course_lower for word in criteria_lower.split())


def rank_strategy(criteria: str, report: Optional[RaceReport]) -> bool:
    if report is None or report.rank is None:
        return False
    ranks = required_ranks(criteria)
    if not ranks:
        return False
    return course_matches(report.course, criteria) and report.rank in ranks


def words_strategy(criteria: str, line: str) -> bool:
    words = criteria.lower().split()
    if not words:
        return False
    line_lower = line.lower()
    return all(word in line_lower for word in words)


def criterion_satisfied(criteria: str, line: str, report: Optional[RaceReport] = None) -> bool:
    return rank_strategy(criteria, report) or words_strategy(criteria, line)


# =============================================================================
# Persistence of unlocks and stats
# =============================================================================

def update_stats(stats_path: Path, **fields) -> None:
    """Read-modify-write of the stats document; a corrupt file is replaced."""
    stats = load_document(stats_path)
    stats.update(fields)
    try:
        write_json_file(stats_path, stats)
    except OSError as e:
        logger.error(f"Failed to write stats file {stats_path}: {e}")


def mark_unlocked(definition_path: Path, name: str, when: datetime) -> Optional[Tuple[int, int]]:
    """
    Stamp ``name`` as unlocked in the definition file.

    Returns the new (unlocked, total) counts, or None when the file or the
    item is missing. An item that is already unlocked keeps its timestamp.
    """
    document = load_document(definition_path)
    items = document_items(document)
    changed = False
    for item in items:
        if item_name(item) == name and not item_is_unlocked(item):
            item[UNLOCK_FIELD] = when.isoformat()
            changed = True

    if not items:
        return None
    if changed:
        try:
            write_json_file(definition_path, document)
        except OSError as e:
            logger.error(f"Failed to write achievement file {definition_path}: {e}")
    return achievement_progress(items)


def merge_emulator_unlocks(
    store_id: Optional[str],
    definitions: Sequence[AchievementDefinition],
    appdata_dir: Path,
) -> List[AchievementDefinition]:
    """
    Apply unlocks recorded by Steam emulators.

    Reads ``<appdata>/<emulator dir>/<store id>/achievements.json`` files
    shaped ``{"<name>": {"earned": bool, "earned_time": unix}}`` and returns
    a new list with matching definitions (case-insensitive name) unlocked.
    """
    if not store_id or not definitions:
        return list(definitions)

    by_name = {d.name.lower(): i for i, d in enumerate(definitions)}
    merged = list(definitions)

    for parts in STEAM_EMULATOR_SAVE_DIRS:
        unlock_file = Path(appdata_dir).joinpath(*parts, str(store_id), "achievements.json")
        if not unlock_file.is_file():
            continue
        document = load_document(unlock_file)
        for name, state in document.items():
            index = by_name.get(str(name).lower())
            if index is None or not isinstance(state, dict) or state.get("earned") is not True:
                continue
            earned_time = state.get("earned_time")
            if isinstance(earned_time, int) and not isinstance(earned_time, bool) and earned_time > 0:
                unlocked_at = datetime.fromtimestamp(earned_time, timezone.utc).isoformat()
            elif merged[index].is_unlocked:
                continue
            else:
                unlocked_at = EARNED_WITHOUT_TIME
            merged[index] = msgspec.structs.replace(merged[index], unlocked_at=unlocked_at)
        logger.debug(f"Merged emulator unlocks from {unlock_file}")
    return merged


# =============================================================================
# Tracker
# =============================================================================

class AchievementTracker:
    """
    Evaluates log lines against one title's definitions.

    Unlock state is read once on construction; definitions unlocked then or
    later in this session are never evaluated again.

    Args:
        title: Title name, also the definition file's stem
        directory: Folder holding ``<title>.json`` and ``stats.json``
        on_progress: Called with (unlocked, total) after every unlock
        line_gate: Substrings a raw line must all contain to be considered
        now: Timestamp source for unlock and stats fields
    """

    def __init__(
        self,
        title: str,
        directory: Path,
        on_progress: Optional[ProgressCallback] = None,
        line_gate: Optional[Sequence[str]] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        self.title = require_title(title)
        self.directory = Path(directory)
        self.definition_path = self.directory / f"{title}.json"
        self.stats_path = self.directory / STATS_FILE_NAME
        self.on_progress = on_progress
        self.line_gate = tuple(line_gate or ())
        self._now = now

        self.definitions = load_definitions(self.definition_path)
        self.translations = load_translations(self.definition_path)
        self._pattern = compile_translations(self.translations)
        self.unlocked: Set[str] = {d.name for d in self.definitions if d.is_unlocked}
        logger.debug(
            f"Tracking {len(self.definitions)} achievements for '{title}' "
            f"({len(self.unlocked)} already unlocked)"
        )

    @property
    def pending(self) -> List[AchievementDefinition]:
        return [d for d in self.definitions if d.name not in self.unlocked]

    def load_stats(self) -> dict:
        return load_document(self.stats_path)

    def update_stats(self, **fields) -> None:
        update_stats(self.stats_path, **fields)

    def passes_gate(self, line: str) -> bool:
        return all(token in line for token in self.line_gate)

    def process_line(self, raw_line: str) -> List[str]:
        """Evaluate one log line; returns the names unlocked by it."""
        if not raw_line or not self.passes_gate(raw_line):
            return []

        line = translate_line(raw_line, self.translations, self._pattern)

        if any(marker in line for marker in LOG_LINE_MARKERS):
            self.update_stats(LastLogLine=line, LastLogTime=self._now().isoformat())

        report = extract_report(line)
        newly_unlocked = []
        for definition in self.pending:
            if criterion_satisfied(definition.criteria, line, report):
                self._unlock(definition.name)
                newly_unlocked.append(definition.name)
        return newly_unlocked

    def _unlock(self, name: str) -> None:
        self.unlocked.add(name)
        when = self._now()
        progress = mark_unlocked(self.definition_path, name, when)
        if progress is None:
            progress = (len(self.unlocked), len(self.definitions))
        unlocked_count, total = progress

        self.update_stats(
            UnlockedCount=unlocked_count,
            LastUnlocked=name,
            LastUnlockedTime=when.isoformat(),
        )
        logger.info(f"Achievement unlocked for '{self.title}': {name} ({unlocked_count}/{total})")

        if self.on_progress is not None:
            try:
                self.on_progress(unlocked_count, total)
            except Exception as e:
                logger.error(f"Achievement progress callback failed: {e}", exc_info=True)
