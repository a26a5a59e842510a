from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import MalformedTemplate, TemplateError
from .identity import compute_key
from .models import (
    DEFAULT_SOURCE_LANGUAGE,
    DEFAULT_TARGET_LANGUAGE,
    FORMAT_VERSION,
    ContextReference,
    Occurrence,
    Placeholder,
    Pool,
    TranslationStatus,
    TranslationUnit,
    UnitKind,
    utc_now,
)
from .reporting import Reporter, resolve_reporter
from .stats import compute_statistics
from .template_codec import validate_template


@dataclass
class OccurrenceGroup:
    kind: UnitKind
    text: str
    key: str
    members: List[Occurrence] = field(default_factory=list)

    @property
    def placeholders(self) -> List[Placeholder]:
        if self.kind != UnitKind.PARAMETERIZED:
            return []
        # all members share one shape; the first member's expressions are kept
        ordered = sorted(self.members[0].placeholders, key=lambda p: p.index)
        return [Placeholder(p.index, p.expression, p.token) for p in ordered]

    def contexts(self) -> List[ContextReference]:
        return [
            ContextReference(
                file_path=o.file_path,
                line=o.line,
                enclosing_scope=o.enclosing_scope,
            )
            for o in self.members
        ]

    def new_unit(self, now: datetime, note: Optional[str] = None) -> TranslationUnit:
        return TranslationUnit(
            key=self.key,
            source_text=self.text,
            target_text=self.text,  # untranslated sentinel
            kind=self.kind,
            extracted_at=now,
            placeholders=self.placeholders,
            status=TranslationStatus.PENDING,
            contexts=self.contexts(),
            translated_at=None,
            note=note,
        )


def check_occurrence(occurrence: Occurrence):
    """Raises a TemplateError when a parameterized occurrence is not a well-formed template."""
    if occurrence.kind != UnitKind.PARAMETERIZED:
        return
    for placeholder in occurrence.placeholders:
        if placeholder.token != f"{{{placeholder.index}}}":
            raise MalformedTemplate(
                f"Placeholder token '{placeholder.token}' does not match index {placeholder.index}",
                occurrence.text,
            )
    validate_template(occurrence.text, occurrence.placeholders)


def group_occurrences(occurrences: Iterable[Occurrence],
                      reporter: Optional[Reporter] = None) -> List[OccurrenceGroup]:
    """
    Groups occurrences by (kind, text, placeholder shape) in discovery order.

    Occurrences failing template validation are rejected through the reporter
    and left out; the rest are grouped as usual.
    """
    reporter = resolve_reporter(reporter)
    groups: Dict[Tuple, OccurrenceGroup] = {}

    for occurrence in occurrences:
        try:
            check_occurrence(occurrence)
        except TemplateError as e:
            reporter.reject(occurrence, e)
            continue

        group_key = (occurrence.kind, occurrence.text, occurrence.placeholder_shape)
        group = groups.get(group_key)
        if group is None:
            group = OccurrenceGroup(
                kind=occurrence.kind,
                text=occurrence.text,
                key=compute_key(occurrence.kind, occurrence.text),
            )
            groups[group_key] = group
        group.members.append(occurrence)

    return list(groups.values())


def create_pool(occurrences: Iterable[Occurrence],
                project_name: str,
                source_language: str = DEFAULT_SOURCE_LANGUAGE,
                target_language: str = DEFAULT_TARGET_LANGUAGE,
                reporter: Optional[Reporter] = None,
                now: Optional[datetime] = None) -> Pool:
    """
    Builds a fresh pool: one Pending unit per distinct (kind, text), every
    occurrence recorded as a context of its unit.
    """
    reporter = resolve_reporter(reporter)
    now = now or utc_now()

    groups = group_occurrences(occurrences, reporter)
    units = [group.new_unit(now) for group in groups]
    accepted = sum(len(group.members) for group in groups)

    pool = Pool(
        project_name=project_name,
        source_language=source_language,
        target_language=target_language,
        format_version=FORMAT_VERSION,
        created_at=now,
        updated_at=now,
        units=units,
        metadata=compute_statistics(units),
    )

    reporter.info(
        f"Created pool '{project_name}': {len(units)} units from {accepted} occurrences"
    )
    return pool
