"""
Boundaries to the language-specific tools around the pool.

A scanner produces occurrences, a patcher consumes patch directives. Neither is
implemented here beyond the JSON occurrence reader; any front end that
satisfies the protocols can be plugged in.
"""
import json
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Protocol, Sequence

from .errors import ScanError
from .logger import get_logger
from .models import Occurrence, Placeholder, Pool, UnitKind
from .template_codec import Part, decode_template, encode_template, parse_interpolation

logger = get_logger(__name__)


class OccurrenceScanner(Protocol):
    def scan(self) -> Iterable[Occurrence]:
        ...


@dataclass
class PatchDirective:
    file_path: str
    line: int
    key: str
    expected_source_text: str
    target_text: str
    kind: UnitKind
    placeholders: List[Placeholder] = field(default_factory=list)

    def target_parts(self) -> List[Part]:
        """Target text split into literal runs and substitution sites, ready to re-emit."""
        if self.kind == UnitKind.PARAMETERIZED:
            return decode_template(self.target_text, self.placeholders)
        return [self.target_text]


@dataclass
class PatchReport:
    files_modified: int = 0
    replacements: int = 0
    errors: Dict[str, List[str]] = field(default_factory=dict)

    def add_error(self, file_path: str, message: str):
        self.errors.setdefault(file_path, []).append(message)

    @property
    def failed_files(self) -> List[str]:
        return sorted(self.errors)

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)


class Patcher(Protocol):
    def apply(self, directives: Sequence[PatchDirective]) -> PatchReport:
        ...


def collect_occurrences(scanner: OccurrenceScanner) -> List[Occurrence]:
    """
    Runs a scanner to completion and buffers everything it produced.

    A scanner that fails halfway yields nothing: the failure surfaces as
    ScanError so a partial scan never reaches pool construction or merge.
    """
    try:
        occurrences = list(scanner.scan())
    except ScanError:
        raise
    except Exception as e:
        raise ScanError(f"Scan failed: {e}") from e

    logger.info(f"Scan complete: {len(occurrences)} occurrences")
    return occurrences


class JsonOccurrenceScanner:
    """
    Reads occurrences exported by an external front end.

    Accepted document shapes: {"occurrences": [...]} or a bare list. Each entry
    has text, kind, file_path, line and optionally column, enclosing_scope and
    placeholders. A parameterized entry may give the raw interpolation body as
    "interpolation" instead of text + placeholders; it is encoded here.
    """

    def __init__(self, file_path: str):
        self.file_path = file_path

    def scan(self) -> Iterable[Occurrence]:
        if not os.path.exists(self.file_path):
            raise ScanError(f"Occurrence file not found: {self.file_path}")

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ScanError(f"Could not read occurrences from {self.file_path}: {e}") from e

        entries = data.get("occurrences", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise ScanError(f"{self.file_path}: 'occurrences' must be a list")

        for number, entry in enumerate(entries, start=1):
            try:
                yield self._to_occurrence(entry)
            except (KeyError, TypeError, ValueError) as e:
                raise ScanError(f"{self.file_path}: invalid occurrence #{number}: {e!r}") from e

    @staticmethod
    def _to_occurrence(entry: Dict) -> Occurrence:
        kind = UnitKind(entry.get("kind", UnitKind.LITERAL.value))

        if kind == UnitKind.PARAMETERIZED and "interpolation" in entry:
            text, placeholders = encode_template(parse_interpolation(entry["interpolation"]))
        else:
            text = entry["text"]
            placeholders = [
                Placeholder(index=p["index"], expression=p["expression"], token=p.get("token", ""))
                for p in entry.get("placeholders", [])
            ]

        return Occurrence(
            text=text,
            kind=kind,
            file_path=entry["file_path"],
            line=int(entry["line"]),
            column=int(entry.get("column", 0)),
            enclosing_scope=entry.get("enclosing_scope", ""),
            placeholders=placeholders,
        )


def build_patch_directives(pool: Pool) -> List[PatchDirective]:
    """
    One directive per (file, line) context of every translated unit, whatever its status.

    Units whose target is blank or still equals the source are skipped: there is
    nothing to write back. Kept-deleted units have no contexts and yield nothing.
    """
    directives: List[PatchDirective] = []
    for unit in pool.units:
        if not unit.is_translated:
            continue
        for context in unit.contexts:
            directives.append(PatchDirective(
                file_path=context.file_path,
                line=context.line,
                key=unit.key,
                expected_source_text=unit.source_text,
                target_text=unit.target_text,
                kind=unit.kind,
                placeholders=list(unit.placeholders),
            ))

    directives.sort(key=lambda d: (d.file_path, d.line))
    return directives


def directives_by_file(directives: Iterable[PatchDirective]) -> Dict[str, List[PatchDirective]]:
    grouped: Dict[str, List[PatchDirective]] = {}
    for directive in directives:
        grouped.setdefault(directive.file_path, []).append(directive)
    return grouped


def directive_to_dict(directive: PatchDirective) -> Dict:
    return {
        "file_path": directive.file_path,
        "line": directive.line,
        "key": directive.key,
        "expected_source_text": directive.expected_source_text,
        "target_text": directive.target_text,
        "kind": directive.kind.value,
        "placeholders": [
            {"index": p.index, "expression": p.expression, "token": p.token}
            for p in directive.placeholders
        ],
    }
