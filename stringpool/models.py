from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import InvalidStatusTransition

FORMAT_VERSION = "2.0.0"
DEFAULT_SOURCE_LANGUAGE = "en-US"
DEFAULT_TARGET_LANGUAGE = "zh-CN"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UnitKind(str, Enum):
    LITERAL = "Literal"
    PARAMETERIZED = "Parameterized"


class TranslationStatus(str, Enum):
    """
    Closed set of unit states.

    Moves between states only through can_transition_to / TranslationUnit.set_status.
    Merge deletion forces IGNORED directly (see merge.update_pool).
    """
    PENDING = "Pending"
    TRANSLATED = "Translated"
    REVIEWED = "Reviewed"
    IGNORED = "Ignored"

    def can_transition_to(self, other: "TranslationStatus") -> bool:
        return other in _TRANSITIONS[self]


_TRANSITIONS = {
    TranslationStatus.PENDING: {
        TranslationStatus.PENDING, TranslationStatus.TRANSLATED, TranslationStatus.IGNORED,
    },
    TranslationStatus.TRANSLATED: {
        TranslationStatus.PENDING, TranslationStatus.TRANSLATED,
        TranslationStatus.REVIEWED, TranslationStatus.IGNORED,
    },
    TranslationStatus.REVIEWED: {
        TranslationStatus.PENDING, TranslationStatus.TRANSLATED,
        TranslationStatus.REVIEWED, TranslationStatus.IGNORED,
    },
    TranslationStatus.IGNORED: {
        TranslationStatus.PENDING, TranslationStatus.TRANSLATED, TranslationStatus.IGNORED,
    },
}


@dataclass
class Placeholder:
    index: int
    expression: str
    token: str = ""  # "{index}", filled in when omitted

    def __post_init__(self):
        if not self.token:
            self.token = f"{{{self.index}}}"


@dataclass
class Occurrence:
    """
    One appearance of a text fragment in source, as delivered by a scanner.

    For PARAMETERIZED occurrences `text` is already the numbered template and
    `placeholders` lists the substitution sites in order.
    """
    text: str
    kind: UnitKind
    file_path: str
    line: int
    column: int = 0
    enclosing_scope: str = ""
    placeholders: List[Placeholder] = field(default_factory=list)

    @property
    def placeholder_shape(self) -> Tuple[Tuple[int, str], ...]:
        if self.kind != UnitKind.PARAMETERIZED:
            return ()
        return tuple(sorted((p.index, p.token) for p in self.placeholders))


@dataclass
class ContextReference:
    file_path: str
    line: int
    enclosing_scope: str = ""
    note: Optional[str] = None


@dataclass
class TranslationUnit:
    key: str
    source_text: str
    target_text: str
    kind: UnitKind
    extracted_at: datetime
    placeholders: List[Placeholder] = field(default_factory=list)
    status: TranslationStatus = TranslationStatus.PENDING
    contexts: List[ContextReference] = field(default_factory=list)
    translated_at: Optional[datetime] = None
    note: Optional[str] = None

    @property
    def usage_count(self) -> int:
        return len(self.contexts)

    @property
    def is_translated(self) -> bool:
        # target == source is the "untranslated" sentinel
        return bool(self.target_text and self.target_text.strip()) and self.target_text != self.source_text

    @property
    def last_touched(self) -> datetime:
        return self.translated_at or self.extracted_at

    def set_status(self, status: TranslationStatus):
        if not self.status.can_transition_to(status):
            raise InvalidStatusTransition(self.status, status)
        self.status = status

    def apply_target(self, target_text: str, now: Optional[datetime] = None):
        """
        Translator edit: stores the target and derives the status from it.
        """
        translated = bool(target_text and target_text.strip()) and target_text != self.source_text
        new_status = TranslationStatus.TRANSLATED if translated else TranslationStatus.PENDING
        self.set_status(new_status)
        self.target_text = target_text
        self.translated_at = (now or utc_now()) if translated else None


@dataclass
class PoolMetadata:
    total_units: int = 0
    translated_count: int = 0
    pending_count: int = 0
    total_contexts: int = 0
    file_statistics: Dict[str, int] = field(default_factory=dict)
    status_statistics: Dict[str, int] = field(default_factory=dict)


@dataclass
class Pool:
    project_name: str
    source_language: str = DEFAULT_SOURCE_LANGUAGE
    target_language: str = DEFAULT_TARGET_LANGUAGE
    format_version: str = FORMAT_VERSION
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    units: List[TranslationUnit] = field(default_factory=list)
    metadata: PoolMetadata = field(default_factory=PoolMetadata)

    def find(self, key: str) -> Optional[TranslationUnit]:
        for unit in self.units:
            if unit.key == key:
                return unit
        return None

    def keys(self) -> List[str]:
        return [u.key for u in self.units]
