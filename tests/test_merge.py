import unittest
from datetime import datetime, timedelta, timezone

from stringpool.identity import compute_key
from stringpool.merge import DELETED_MARKER, index_units, update_pool
from stringpool.models import (
    ContextReference,
    Occurrence,
    Placeholder,
    Pool,
    TranslationStatus,
    TranslationUnit,
    UnitKind,
)
from stringpool.pool_builder import create_pool
from stringpool.reporting import Reporter

T0 = datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(days=1)
T2 = T0 + timedelta(days=2)


def literal(text, file_path="src/App.cs", line=1):
    return Occurrence(text=text, kind=UnitKind.LITERAL, file_path=file_path, line=line)


def make_unit(key, source, target, translated_at=None, status=TranslationStatus.TRANSLATED, note=None):
    return TranslationUnit(
        key=key,
        source_text=source,
        target_text=target,
        kind=UnitKind.LITERAL,
        extracted_at=T0,
        status=status,
        contexts=[ContextReference("src/App.cs", 1)],
        translated_at=translated_at,
        note=note,
    )


class TestUpdatePool(unittest.TestCase):
    def setUp(self):
        self.pool = create_pool([literal("A", line=1), literal("B", line=2)], "Demo", now=T0)
        self.pool.units[0].apply_target("X", T1)
        self.pool.units[1].apply_target("Y", T1)

    def test_merge_classifies_units(self):
        result = update_pool(self.pool, [literal("A", line=1), literal("C", line=3)], now=T2)

        self.assertEqual(result.stats.as_dict(), {"unchanged": 1, "updated": 0, "added": 1, "deleted": 1})
        by_source = {u.source_text: u for u in result.pool.units}
        self.assertEqual(set(by_source), {"A", "C"})
        self.assertEqual(by_source["A"].target_text, "X")
        self.assertEqual(by_source["A"].status, TranslationStatus.TRANSLATED)
        self.assertEqual(by_source["A"].translated_at, T1)
        self.assertEqual(by_source["C"].target_text, "C")
        self.assertEqual(by_source["C"].status, TranslationStatus.PENDING)
        self.assertEqual(by_source["C"].extracted_at, T2)
        self.assertEqual(result.pool.metadata.total_contexts, 2)

    def test_keep_deleted_marks_unit_ignored(self):
        result = update_pool(self.pool, [literal("A"), literal("C")], keep_deleted=True, now=T2)

        self.assertEqual(result.stats.deleted, 1)
        deleted = result.pool.find(compute_key(UnitKind.LITERAL, "B"))
        self.assertIsNotNone(deleted)
        self.assertEqual(deleted.status, TranslationStatus.IGNORED)
        self.assertEqual(deleted.contexts, [])
        self.assertEqual(deleted.target_text, "Y")
        self.assertIn(DELETED_MARKER, deleted.note)

    def test_deleted_marker_is_not_repeated(self):
        self.pool.units[1].note = f"old note {DELETED_MARKER}"
        result = update_pool(self.pool, [literal("A")], keep_deleted=True, now=T2)
        deleted = result.pool.find(compute_key(UnitKind.LITERAL, "B"))
        self.assertEqual(deleted.note.count(DELETED_MARKER), 1)

    def test_rescan_of_same_occurrences_changes_nothing(self):
        occurrences = [literal("A", line=1), literal("B", line=2), literal("A", "src/Other.cs", 7)]
        pool = create_pool(occurrences, "Demo", now=T0)

        result = update_pool(pool, occurrences, now=T1)

        self.assertEqual(result.stats.as_dict(), {"unchanged": 2, "updated": 0, "added": 0, "deleted": 0})
        self.assertEqual([u.key for u in result.pool.units], [u.key for u in pool.units])

    def test_contexts_and_placeholders_come_from_fresh_scan(self):
        tpl = Occurrence(text="Hi {0}", kind=UnitKind.PARAMETERIZED, file_path="src/Old.cs", line=5,
                         placeholders=[Placeholder(0, "name")])
        pool = create_pool([tpl], "Demo", now=T0)
        pool.units[0].apply_target("你好 {0}", T1)

        moved = Occurrence(text="Hi {0}", kind=UnitKind.PARAMETERIZED, file_path="src/New.cs", line=40,
                           placeholders=[Placeholder(0, "user.Name")])
        unit = update_pool(pool, [moved], now=T2).pool.units[0]

        self.assertEqual(unit.target_text, "你好 {0}")
        self.assertEqual(unit.contexts, [ContextReference("src/New.cs", 40, "")])
        self.assertEqual(unit.placeholders[0].expression, "user.Name")

    def test_existing_pool_is_not_mutated(self):
        before_b = self.pool.units[1]
        update_pool(self.pool, [literal("A", "src/Moved.cs", 99)], keep_deleted=True, now=T2)

        self.assertEqual(len(self.pool.units), 2)
        self.assertEqual(before_b.status, TranslationStatus.TRANSLATED)
        self.assertEqual(before_b.contexts[0].line, 2)
        self.assertEqual(self.pool.units[0].contexts[0].file_path, "src/App.cs")

    def test_pool_header_is_carried_over(self):
        result = update_pool(self.pool, [literal("A")], now=T2)
        self.assertEqual(result.pool.project_name, "Demo")
        self.assertEqual(result.pool.created_at, T0)
        self.assertEqual(result.pool.updated_at, T2)
        self.assertEqual(result.pool.metadata.total_units, 1)

    def test_same_key_different_text_is_updated(self):
        key = compute_key(UnitKind.LITERAL, "New text")
        pool = Pool(project_name="Demo", created_at=T0, updated_at=T0,
                    units=[make_unit(key, "Old text", "Vieux texte", translated_at=T1)])

        reporter = Reporter()
        result = update_pool(pool, [literal("New text")], reporter=reporter, now=T2)

        self.assertEqual(result.stats.updated, 1)
        unit = result.pool.units[0]
        self.assertEqual(unit.source_text, "New text")
        self.assertEqual(unit.target_text, "New text")
        self.assertEqual(unit.status, TranslationStatus.PENDING)
        self.assertEqual(unit.note, '[Updated] Previous: "Old text" -> "Vieux texte"')
        self.assertTrue(reporter.warnings)

    def test_rejected_fresh_occurrence_does_not_abort_merge(self):
        bad = Occurrence(text="{0} {1}", kind=UnitKind.PARAMETERIZED, file_path="x.cs", line=1,
                         placeholders=[Placeholder(0, "a")])
        reporter = Reporter()
        result = update_pool(self.pool, [literal("A"), bad], reporter=reporter, now=T2)

        self.assertEqual(len(reporter.rejected), 1)
        self.assertEqual(result.stats.unchanged, 1)


class TestDuplicateKeys(unittest.TestCase):
    def test_latest_touched_copy_wins(self):
        key = compute_key(UnitKind.LITERAL, "A")
        older = make_unit(key, "A", "old", translated_at=T1)
        newer = make_unit(key, "A", "new", translated_at=T2)
        reporter = Reporter()

        index = index_units([older, newer], reporter)

        self.assertIs(index[key], newer)
        self.assertEqual(len(reporter.warnings), 1)

    def test_tie_keeps_first_in_document_order(self):
        key = compute_key(UnitKind.LITERAL, "A")
        first = make_unit(key, "A", "first", translated_at=T1)
        second = make_unit(key, "A", "second", translated_at=T1)

        index = index_units([first, second], Reporter())
        self.assertIs(index[key], first)

    def test_naive_and_aware_timestamps_compare(self):
        key = compute_key(UnitKind.LITERAL, "A")
        aware = make_unit(key, "A", "aware", translated_at=T1)
        naive = make_unit(key, "A", "naive", translated_at=datetime(2026, 1, 3, 8, 0))

        index = index_units([aware, naive], Reporter())
        self.assertIs(index[key], naive)

    def test_merge_resolves_duplicates(self):
        key = compute_key(UnitKind.LITERAL, "A")
        pool = Pool(project_name="Demo", created_at=T0, updated_at=T0, units=[
            make_unit(key, "A", "newer", translated_at=T2),
            make_unit(key, "A", "older", translated_at=T1),
        ])

        result = update_pool(pool, [literal("A")], now=T2)

        self.assertEqual(len(result.pool.units), 1)
        self.assertEqual(result.pool.units[0].target_text, "newer")
        self.assertEqual(result.stats.unchanged, 1)


if __name__ == "__main__":
    unittest.main()
