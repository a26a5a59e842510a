import json
import logging
import sys

import pytest

from stringpool.cli import main
from stringpool.logger import ROOT_LOGGER_NAME
from stringpool.persistence import load_pool, save_pool


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.propagate = True
    sys.excepthook = sys.__excepthook__


@pytest.fixture
def project(tmp_path):
    occurrences = tmp_path / "occurrences.json"
    occurrences.write_text(json.dumps({"occurrences": [
        {"text": "Save", "kind": "Literal", "file_path": "src/Menu.cs", "line": 10},
        {"text": "Save", "kind": "Literal", "file_path": "src/Toolbar.cs", "line": 4},
        {"kind": "Parameterized", "interpolation": "Hello {user.Name}!",
         "file_path": "src/Greeter.cs", "line": 3},
    ]}), encoding="utf-8")
    return {
        "dir": tmp_path,
        "config": str(tmp_path / "stringpool.json"),
        "occurrences": str(occurrences),
        "mapping": str(tmp_path / "localization-mapping.json"),
    }


def run(project, *args):
    return main(["--config", project["config"], "--log-level", "WARNING", *args])


def extract(project, *extra):
    return run(project, "extract", "--occurrences", project["occurrences"],
               "--output", project["mapping"], *extra)


def translate_all(project):
    pool = load_pool(project["mapping"])
    pool.units[0].apply_target("保存")
    pool.units[1].apply_target("你好，{0}！")
    save_pool(pool, project["mapping"])


def test_extract_creates_pool(project, capsys):
    assert extract(project, "--project", "Demo", "--target-lang", "ja-JP") == 0

    pool = load_pool(project["mapping"])
    assert pool.project_name == "Demo"
    assert pool.target_language == "ja-JP"
    assert [u.source_text for u in pool.units] == ["Save", "Hello {0}!"]
    assert pool.units[1].placeholders[0].expression == "user.Name"
    assert "Created pool with 2 translations" in capsys.readouterr().out


def test_extract_update_keeps_translations(project, capsys):
    extract(project)
    translate_all(project)
    capsys.readouterr()

    assert extract(project, "--update") == 0

    pool = load_pool(project["mapping"])
    assert pool.units[0].target_text == "保存"
    assert "Updated: 2 unchanged, 0 updated, 0 added, 0 deleted" in capsys.readouterr().out


def test_validate_strict_fails_on_untranslated(project):
    extract(project)
    assert run(project, "validate", "--mapping", project["mapping"]) == 0
    assert run(project, "validate", "--mapping", project["mapping"], "--strict") == 1

    translate_all(project)
    assert run(project, "validate", "--mapping", project["mapping"], "--strict") == 0


def test_mapping_file_from_settings(project):
    with open(project["config"], "w", encoding="utf-8") as f:
        json.dump({"mapping_file": project["mapping"]}, f)

    assert run(project, "extract", "--occurrences", project["occurrences"]) == 0
    assert run(project, "validate") == 0


def test_stats(project, capsys):
    extract(project)
    capsys.readouterr()

    assert run(project, "stats", "--mapping", project["mapping"]) == 0
    out = capsys.readouterr().out
    assert "Unique Translations: 2" in out
    assert "Total Contexts: 3" in out


def test_directives_written_as_json(project):
    extract(project)
    translate_all(project)
    output = project["dir"] / "directives.json"

    assert run(project, "directives", "--mapping", project["mapping"], "--output", str(output)) == 0

    data = json.loads(output.read_text(encoding="utf-8"))
    assert [(d["file_path"], d["line"]) for d in data] == [
        ("src/Greeter.cs", 3), ("src/Menu.cs", 10), ("src/Toolbar.cs", 4),
    ]


def test_xliff_round_trip(project):
    extract(project)
    translate_all(project)
    xliff = str(project["dir"] / "demo.xlf")
    assert run(project, "export-xliff", "--mapping", project["mapping"], "--output", xliff) == 0

    # start over with an untranslated pool, then pull the translations back in
    extract(project)
    assert run(project, "import-xliff", "--mapping", project["mapping"], "--xliff", xliff) == 0

    pool = load_pool(project["mapping"])
    assert [u.target_text for u in pool.units] == ["保存", "你好，{0}！"]


def test_missing_pool_is_an_error(project):
    assert run(project, "validate", "--mapping", str(project["dir"] / "missing.json")) == 1


def test_broken_occurrence_file_is_an_error(project):
    with open(project["occurrences"], "w", encoding="utf-8") as f:
        f.write("not json")
    assert extract(project) == 1
