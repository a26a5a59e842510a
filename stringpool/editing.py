import re
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .errors import UnknownUnitError
from .logger import get_logger
from .models import Pool, TranslationStatus, TranslationUnit, utc_now
from .persistence import save_pool
from .stats import compute_statistics

logger = get_logger(__name__)


class PoolEditor:
    """
    Single owner of an in-memory pool during interactive editing.

    Every mutation goes through this object and holds its lock, so a GUI and
    background workers can share one editor safely. Nothing is written to disk
    until save() is called.
    """

    def __init__(self, pool: Pool, clock: Callable[[], datetime] = utc_now):
        self.pool = pool
        self._clock = clock
        self._lock = threading.RLock()
        self.dirty = False
        self._index: Dict[str, TranslationUnit] = {}
        self._indexed_units = None
        self._indexed_count = 0

    def _key_index(self) -> Dict[str, TranslationUnit]:
        # rebuilt whenever the unit list is replaced or resized
        units = self.pool.units
        if units is not self._indexed_units or len(units) != self._indexed_count:
            index: Dict[str, TranslationUnit] = {}
            for unit in units:
                index.setdefault(unit.key, unit)
            self._index = index
            self._indexed_units = units
            self._indexed_count = len(units)
        return self._index

    def find(self, key: str) -> Optional[TranslationUnit]:
        with self._lock:
            return self._key_index().get(key)

    def unit(self, key: str) -> TranslationUnit:
        unit = self.find(key)
        if unit is None:
            raise UnknownUnitError(key)
        return unit

    @property
    def units(self) -> List[TranslationUnit]:
        return self.pool.units

    def set_target(self, key: str, target_text: str) -> TranslationUnit:
        """Translator edit; status follows the target (Translated if it differs from source)."""
        with self._lock:
            unit = self.unit(key)
            unit.apply_target(target_text, self._clock())
            self._touch()
            return unit

    def mark_reviewed(self, key: str) -> TranslationUnit:
        with self._lock:
            unit = self.unit(key)
            unit.set_status(TranslationStatus.REVIEWED)
            self._touch()
            return unit

    def mark_ignored(self, key: str) -> TranslationUnit:
        with self._lock:
            unit = self.unit(key)
            unit.set_status(TranslationStatus.IGNORED)
            self._touch()
            return unit

    def reopen(self, key: str) -> TranslationUnit:
        """Back from Ignored/Reviewed to the status the current target implies."""
        with self._lock:
            unit = self.unit(key)
            status = TranslationStatus.TRANSLATED if unit.is_translated else TranslationStatus.PENDING
            unit.set_status(status)
            self._touch()
            return unit

    def ignore_matching(self, pattern: str) -> int:
        """
        Marks every unit whose source matches `pattern` (re.search) as Ignored.

        Raises re.error for an invalid pattern.
        """
        regex = re.compile(pattern)
        return self._ignore_where(lambda u: bool(regex.search(u.source_text)))

    def ignore_without_letters(self) -> int:
        """Marks units whose source has no letters at all (numbers, symbols, punctuation)."""
        return self._ignore_where(lambda u: not any(ch.isalpha() for ch in u.source_text))

    def _ignore_where(self, predicate: Callable[[TranslationUnit], bool]) -> int:
        count = 0
        with self._lock:
            for unit in self.pool.units:
                if unit.status == TranslationStatus.IGNORED or not predicate(unit):
                    continue
                unit.set_status(TranslationStatus.IGNORED)
                count += 1
            if count:
                self._touch()
        logger.info(f"Marked {count} translation units as ignored")
        return count

    def refresh_metadata(self):
        with self._lock:
            self.pool.metadata = compute_statistics(self.pool.units)

    def save(self, file_path: str):
        with self._lock:
            self.pool.updated_at = self._clock()
            save_pool(self.pool, file_path)
            self.dirty = False

    def _touch(self):
        self.dirty = True
        self.pool.metadata = compute_statistics(self.pool.units)
