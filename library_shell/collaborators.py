"""
Interfaces the core consumes but does not implement.

Hosts pass concrete implementations in; tests pass stubs.
"""

from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from .models import ExeCandidate

# onAchievementProgress(unlocked, total)
ProgressCallback = Callable[[int, int], None]

# onExeCandidatesReady(candidates)
CandidatesCallback = Callable[[List[ExeCandidate]], None]

# Called with the store id (or None) once a background lookup finishes
StoreIdCallback = Callable[[Optional[str]], None]


class LaunchProcess(Protocol):
    def __call__(self, path: str, args: Sequence[str], working_dir: Optional[str]) -> int:
        ...


class RunPreLaunchScript(Protocol):
    def __call__(self, path: str) -> bool:
        ...


class ResolveStoreIdentifierOnline(Protocol):
    def __call__(self, name: str) -> Awaitable[Optional[str]]:
        ...
