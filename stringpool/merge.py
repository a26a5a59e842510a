"""
Incremental update of a translation pool from a fresh scan.

Every fresh group is classified against the existing pool by content key:

- unchanged: key known and same source text; translation work is carried over
- updated:   key known but source differs (hash collision); starts over as Pending
- added:     key unknown; new Pending unit
- deleted:   existing key not seen in the scan; dropped, or kept as Ignored

Fresh data decides structure (which units exist, their contexts and
placeholders); the existing pool decides translated content.
"""
import copy
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .models import Occurrence, Pool, TranslationStatus, TranslationUnit, utc_now
from .pool_builder import group_occurrences
from .reporting import Reporter, resolve_reporter
from .stats import compute_statistics

DELETED_MARKER = "[Deleted from source]"


@dataclass
class MergeStats:
    unchanged: int = 0
    updated: int = 0
    added: int = 0
    deleted: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "unchanged": self.unchanged,
            "updated": self.updated,
            "added": self.added,
            "deleted": self.deleted,
        }


def _touched_order(unit: TranslationUnit) -> datetime:
    # naive timestamps are read as UTC for ordering only
    touched = unit.last_touched
    if touched.tzinfo is None:
        return touched.replace(tzinfo=timezone.utc)
    return touched


@dataclass
class MergeResult:
    pool: Pool
    stats: MergeStats


def index_units(units: Iterable[TranslationUnit],
                reporter: Optional[Reporter] = None) -> Dict[str, TranslationUnit]:
    """
    Indexes units by key, resolving duplicate keys.

    A corrupted document may repeat a key; the most recently touched copy
    (translated_at, else extracted_at) wins, first in document order on ties.
    The other copies are lost, so this always warns.
    """
    reporter = resolve_reporter(reporter)
    index: Dict[str, TranslationUnit] = {}
    discarded: Dict[str, int] = {}

    for unit in units:
        current = index.get(unit.key)
        if current is None:
            index[unit.key] = unit
            continue
        discarded[unit.key] = discarded.get(unit.key, 0) + 1
        if _touched_order(unit) > _touched_order(current):
            index[unit.key] = unit

    for key, count in discarded.items():
        reporter.warning(
            f"Found duplicate key '{key}' in existing pool, keeping the latest one "
            f"({count} older cop{'y' if count == 1 else 'ies'} discarded)"
        )
    return index


def _mark_deleted(unit: TranslationUnit) -> TranslationUnit:
    note = unit.note or ""
    if DELETED_MARKER not in note:
        note = f"{note} {DELETED_MARKER}".strip()
    # forced: deletion bypasses the transition table
    return replace(
        copy.deepcopy(unit),
        status=TranslationStatus.IGNORED,
        contexts=[],
        note=note,
    )


def update_pool(existing_pool: Pool,
                fresh_occurrences: Iterable[Occurrence],
                keep_deleted: bool = False,
                reporter: Optional[Reporter] = None,
                now: Optional[datetime] = None) -> MergeResult:
    """
    Reconciles `existing_pool` with a complete fresh scan.

    Returns a new pool and the classification counts; `existing_pool` and its
    units are left untouched.
    """
    reporter = resolve_reporter(reporter)
    now = now or utc_now()
    stats = MergeStats()

    remaining = index_units(existing_pool.units, reporter)
    groups = group_occurrences(fresh_occurrences, reporter)
    units: List[TranslationUnit] = []

    for group in groups:
        existing = remaining.pop(group.key, None)

        if existing is None:
            units.append(group.new_unit(now))
            stats.added += 1
            reporter.debug(f"New string found: \"{group.text}\" ({len(group.members)} contexts)")
            continue

        if existing.source_text == group.text:
            units.append(TranslationUnit(
                key=existing.key,
                source_text=existing.source_text,
                target_text=existing.target_text,
                kind=existing.kind,
                extracted_at=existing.extracted_at,
                placeholders=group.placeholders,
                status=existing.status,
                contexts=group.contexts(),
                translated_at=existing.translated_at,
                note=existing.note,
            ))
            stats.unchanged += 1
            continue

        # Same key, different text: only reachable through a hash collision.
        note = f"[Updated] Previous: \"{existing.source_text}\" -> \"{existing.target_text}\""
        units.append(group.new_unit(now, note=note))
        stats.updated += 1
        reporter.warning(f"String updated: \"{existing.source_text}\" -> \"{group.text}\"")

    stats.deleted = len(remaining)
    if remaining:
        if keep_deleted:
            units.extend(_mark_deleted(unit) for unit in remaining.values())
            reporter.warning(f"{stats.deleted} translations deleted from source (kept in pool)")
        else:
            reporter.warning(f"{stats.deleted} translations deleted from source (removed from pool)")

    pool = Pool(
        project_name=existing_pool.project_name,
        source_language=existing_pool.source_language,
        target_language=existing_pool.target_language,
        format_version=existing_pool.format_version,
        created_at=existing_pool.created_at,
        updated_at=now,
        units=units,
        metadata=compute_statistics(units),
    )

    reporter.info(
        f"Update summary: unchanged={stats.unchanged} updated={stats.updated} "
        f"added={stats.added} deleted={stats.deleted} contexts={pool.metadata.total_contexts}"
    )
    return MergeResult(pool=pool, stats=stats)
