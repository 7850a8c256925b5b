"""
Merge the three assignment stores into one subject list for a (teacher, class) pair.

Precedence: embedded class list (direct) > teacher_subject_links (link) > teacher_assignments (dated).
The first store that mentions a subject wins and tags it; later mentions are skipped.
Subject metadata always comes from the Subject row, so stores can only disagree on *whether*
a teacher teaches a subject, never on what the subject is.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple
from uuid import UUID

from app.core.enums import SourceKind
from app.core.models import Subject

from .schemas import ResolvedSubject

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssignmentSources:
    """Raw snapshot of the three stores for one (teacher, class) pair, each in its natural order."""

    embedded: Sequence[UUID] = ()
    links: Sequence[UUID] = ()
    dated: Sequence[UUID] = ()
    subjects: Mapping[UUID, Subject] = field(default_factory=dict)

    def ordered(self) -> Iterable[Tuple[SourceKind, Sequence[UUID]]]:
        return (
            (SourceKind.direct, self.embedded),
            (SourceKind.link, self.links),
            (SourceKind.dated, self.dated),
        )

    def referenced_subject_ids(self) -> List[UUID]:
        return [*self.embedded, *self.links, *self.dated]


def to_resolved_subject(subject: Subject, source_kind: SourceKind) -> ResolvedSubject:
    return ResolvedSubject(
        subject_id=subject.id,
        name=subject.name,
        code=subject.code,
        type=subject.type,
        education_level=subject.education_level or "UNKNOWN",
        is_principal=bool(subject.is_principal),
        is_compulsory=bool(subject.is_compulsory),
        source_kind=source_kind,
    )


def merge_assignment_sources(sources: AssignmentSources) -> List[ResolvedSubject]:
    merged: Dict[UUID, ResolvedSubject] = {}
    for source_kind, subject_ids in sources.ordered():
        for subject_id in subject_ids:
            if subject_id in merged:
                continue
            subject = sources.subjects.get(subject_id)
            if subject is None:
                logger.debug("Skipping %s reference to missing subject %s", source_kind.value, subject_id)
                continue
            merged[subject_id] = to_resolved_subject(subject, source_kind)
    return list(merged.values())
