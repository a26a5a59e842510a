from collections import Counter
from typing import Iterable, List

from .models import Pool, PoolMetadata, TranslationStatus, TranslationUnit


def compute_statistics(units: Iterable[TranslationUnit]) -> PoolMetadata:
    """
    Pure aggregate over the units. Never read back from a loaded document.
    """
    units = list(units)
    translated = sum(1 for u in units if u.is_translated)

    file_counts = Counter(c.file_path for u in units for c in u.contexts)
    status_counts = {status.value: 0 for status in TranslationStatus}
    for unit in units:
        status_counts[unit.status.value] += 1

    return PoolMetadata(
        total_units=len(units),
        translated_count=translated,
        pending_count=len(units) - translated,
        total_contexts=sum(len(u.contexts) for u in units),
        file_statistics=dict(file_counts),
        status_statistics=status_counts,
    )


def _percentage(value: int, total: int) -> float:
    return round(value / total * 100, 1) if total > 0 else 0.0


def format_statistics_report(pool: Pool) -> str:
    """Human-readable progress report for the `stats` command."""
    meta = compute_statistics(pool.units)
    lines: List[str] = [
        "=== Translation Pool Statistics ===",
        f"Project: {pool.project_name}",
        f"Source Language: {pool.source_language}",
        f"Target Language: {pool.target_language}",
        f"Format Version: {pool.format_version}",
        "",
        "Overall Progress:",
        f"  Unique Translations: {meta.total_units}",
        f"  Translated: {meta.translated_count} ({_percentage(meta.translated_count, meta.total_units)}%)",
        f"  Pending: {meta.pending_count} ({_percentage(meta.pending_count, meta.total_units)}%)",
        f"  Total Contexts: {meta.total_contexts}",
        "",
        "By File (context occurrences):",
    ]

    translated_by_file = Counter(
        c.file_path for u in pool.units if u.is_translated for c in u.contexts
    )
    for file_path, count in sorted(meta.file_statistics.items(), key=lambda x: (-x[1], x[0])):
        lines.append(f"  {file_path}: {count} occurrences ({translated_by_file[file_path]} translated)")

    lines.append("")
    lines.append("By Status:")
    for status, count in sorted(meta.status_statistics.items(), key=lambda x: -x[1]):
        lines.append(f"  {status}: {count}")

    return "\n".join(lines)
