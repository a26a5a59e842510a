import unittest
from datetime import datetime, timezone

from stringpool.identity import compute_key
from stringpool.models import (
    FORMAT_VERSION,
    Occurrence,
    Placeholder,
    TranslationStatus,
    UnitKind,
)
from stringpool.pool_builder import create_pool, group_occurrences
from stringpool.reporting import Reporter

NOW = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)


def literal(text, file_path="src/App.cs", line=1):
    return Occurrence(text=text, kind=UnitKind.LITERAL, file_path=file_path, line=line)


def template(text, expressions, file_path="src/App.cs", line=1):
    placeholders = [Placeholder(i, expr) for i, expr in enumerate(expressions)]
    return Occurrence(text=text, kind=UnitKind.PARAMETERIZED, file_path=file_path,
                      line=line, placeholders=placeholders)


class TestCreatePool(unittest.TestCase):
    def test_same_text_is_one_unit_with_all_contexts(self):
        occurrences = [
            literal("Save", "src/Menu.cs", 10),
            literal("Save", "src/Toolbar.cs", 4),
            literal("Save", "src/Dialog.cs", 88),
        ]
        pool = create_pool(occurrences, "Demo", now=NOW)

        self.assertEqual(len(pool.units), 1)
        unit = pool.units[0]
        self.assertEqual(unit.key, compute_key(UnitKind.LITERAL, "Save"))
        self.assertEqual(unit.usage_count, 3)
        self.assertEqual([c.file_path for c in unit.contexts],
                         ["src/Menu.cs", "src/Toolbar.cs", "src/Dialog.cs"])

    def test_new_units_are_pending_with_source_as_target(self):
        pool = create_pool([literal("Open"), template("Hi {0}", ["name"])], "Demo", now=NOW)

        for unit in pool.units:
            self.assertEqual(unit.status, TranslationStatus.PENDING)
            self.assertEqual(unit.target_text, unit.source_text)
            self.assertIsNone(unit.translated_at)
            self.assertEqual(unit.extracted_at, NOW)

    def test_literal_and_template_with_same_text_are_distinct(self):
        pool = create_pool([literal("Hello"), template("Hello", [])], "Demo", now=NOW)
        self.assertEqual(len(pool.units), 2)
        self.assertNotEqual(pool.units[0].key, pool.units[1].key)

    def test_units_keep_first_seen_order(self):
        pool = create_pool([literal("B"), literal("A"), literal("B"), literal("C")], "Demo", now=NOW)
        self.assertEqual([u.source_text for u in pool.units], ["B", "A", "C"])

    def test_pool_header(self):
        pool = create_pool([literal("A")], "Demo", now=NOW)
        self.assertEqual(pool.project_name, "Demo")
        self.assertEqual(pool.source_language, "en-US")
        self.assertEqual(pool.target_language, "zh-CN")
        self.assertEqual(pool.format_version, FORMAT_VERSION)
        self.assertEqual(pool.created_at, NOW)
        self.assertEqual(pool.updated_at, NOW)

    def test_metadata_is_computed(self):
        pool = create_pool([literal("A", "a.cs"), literal("A", "b.cs"), literal("B", "a.cs")], "Demo", now=NOW)
        self.assertEqual(pool.metadata.total_units, 2)
        self.assertEqual(pool.metadata.total_contexts, 3)
        self.assertEqual(pool.metadata.file_statistics, {"a.cs": 2, "b.cs": 1})

    def test_template_placeholders_come_from_first_occurrence(self):
        pool = create_pool([
            template("Welcome {0}", ["user.Name"], line=3),
            template("Welcome {0}", ["currentUser"], line=9),
        ], "Demo", now=NOW)

        self.assertEqual(len(pool.units), 1)
        unit = pool.units[0]
        self.assertEqual(unit.placeholders, [Placeholder(0, "user.Name", "{0}")])
        self.assertEqual(unit.usage_count, 2)

    def test_empty_input_gives_empty_pool(self):
        pool = create_pool([], "Demo", now=NOW)
        self.assertEqual(pool.units, [])
        self.assertEqual(pool.metadata.total_units, 0)


class TestRejectedOccurrences(unittest.TestCase):
    def test_broken_template_is_skipped_and_reported(self):
        reporter = Reporter()
        occurrences = [
            literal("Fine"),
            template("Hello {0} {1}", ["name"], "src/Bad.cs", 42),
            template("Bye {0}", ["name"]),
        ]
        pool = create_pool(occurrences, "Demo", reporter=reporter, now=NOW)

        self.assertEqual([u.source_text for u in pool.units], ["Fine", "Bye {0}"])
        self.assertEqual(len(reporter.rejected), 1)
        rejection = reporter.rejected[0]
        self.assertEqual(rejection.file_path, "src/Bad.cs")
        self.assertEqual(rejection.line, 42)
        self.assertEqual(rejection.error_type, "PlaceholderCountMismatch")

    def test_token_not_matching_index_is_rejected(self):
        reporter = Reporter()
        occ = Occurrence(text="Hi {0}", kind=UnitKind.PARAMETERIZED, file_path="a.cs", line=1,
                         placeholders=[Placeholder(0, "name", token="{1}")])
        groups = group_occurrences([occ], reporter)

        self.assertEqual(groups, [])
        self.assertEqual(reporter.rejected[0].error_type, "MalformedTemplate")

    def test_literal_text_is_never_parsed(self):
        reporter = Reporter()
        pool = create_pool([literal("Use {braces} freely {")], "Demo", reporter=reporter, now=NOW)
        self.assertEqual(len(pool.units), 1)
        self.assertEqual(reporter.rejected, [])


if __name__ == "__main__":
    unittest.main()
