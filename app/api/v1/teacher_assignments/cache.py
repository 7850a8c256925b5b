"""In-memory, time-bounded cache of resolved teacher subjects.

One instance per application (created in create_app, kept on app.state). Entries are
immutable tuples replaced wholesale, so a reader racing a writer sees either the old or
the new list, never a mix.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import Request

from .schemas import ResolvedSubject

logger = logging.getLogger(__name__)

CacheKey = Tuple[Hashable, bool]  # (class_id, include_derived)


@dataclass(frozen=True)
class CacheEntry:
    subjects: Tuple[ResolvedSubject, ...]
    computed_at: float


class ResolutionCache:
    def __init__(self, ttl_seconds: float = 60, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[UUID, Dict[CacheKey, CacheEntry]] = {}

    def get(self, teacher_id: UUID, class_id: UUID, include_derived: bool = False) -> Optional[Tuple[ResolvedSubject, ...]]:
        teacher_entries = self._entries.get(teacher_id)
        if not teacher_entries:
            return None
        entry = teacher_entries.get((class_id, include_derived))
        if entry is None:
            return None
        if self._clock() - entry.computed_at >= self.ttl_seconds:
            logger.debug("Cache expired for teacher %s in class %s", teacher_id, class_id)
            return None
        return entry.subjects

    def store(
        self,
        teacher_id: UUID,
        class_id: UUID,
        subjects: Sequence[ResolvedSubject],
        include_derived: bool = False,
    ) -> Tuple[ResolvedSubject, ...]:
        entry = CacheEntry(subjects=tuple(subjects), computed_at=self._clock())
        # Copy-on-write so a concurrent get never iterates a dict being mutated
        teacher_entries = dict(self._entries.get(teacher_id, {}))
        teacher_entries[(class_id, include_derived)] = entry
        self._entries[teacher_id] = teacher_entries
        return entry.subjects

    def invalidate(self, teacher_id: UUID) -> None:
        if self._entries.pop(teacher_id, None) is not None:
            logger.info("Cleared resolution cache for teacher %s", teacher_id)

    def invalidate_all(self) -> None:
        self._entries = {}
        logger.info("Cleared all resolution cache")

    def __len__(self) -> int:
        return sum(len(v) for v in self._entries.values())


def get_resolution_cache(request: Request) -> ResolutionCache:
    """FastAPI dependency: the application's cache instance."""
    return request.app.state.resolution_cache
