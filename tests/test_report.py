from datetime import datetime

import pytest

from vaultgraph.core.models import (
    ConnectionInfo,
    ConnectionType,
    HubMetric,
    NoteImportance,
    PathAnalysis,
    PathResult,
)
from vaultgraph.core.report import (
    analysis_to_markdown,
    connection_symbol,
    export_report,
    hubs_to_markdown,
    path_to_markdown,
    report_file_name,
)

GENERATED_AT = datetime(2024, 5, 1, 9, 30, 15)


@pytest.fixture
def source(make_source):
    return make_source({"A.md": "", "B.md": "", "folder/C.md": ""})


def info(kind, tags=None):
    return ConnectionInfo(type=ConnectionType(kind), common_tags=tags)


def test_connection_symbols() -> None:
    assert connection_symbol(info("direct")) == " → "
    assert connection_symbol(None) == " → "
    assert connection_symbol(info("backlink")) == " ← "
    assert connection_symbol(info("embedded")) == " !→ "
    assert connection_symbol(info("tag", ["a", "b"])) == " #a, #b → "
    assert connection_symbol(info("tag")) == " #→ "


def test_path_to_markdown(source) -> None:
    result = PathResult(
        distance=2,
        path=["A.md", "B.md", "folder/C.md"],
        connection_types=[info("direct"), info("backlink")],
    )

    assert path_to_markdown(result, source) == "[[A]] → [[B]] ← [[C]]"


def test_path_to_markdown_unknown_note(source) -> None:
    result = PathResult(distance=1, path=["gone.md", "A.md"], connection_types=[info("tag", ["x"])])

    assert path_to_markdown(result, source) == "gone.md → [[A]]"


def test_analysis_to_markdown(source) -> None:
    shortest = PathResult(2, ["A.md", "B.md", "folder/C.md"], [info("direct"), info("direct")])
    alternative = PathResult(1, ["A.md", "folder/C.md"], [info("tag", ["x"])])
    analysis = PathAnalysis(
        start="A.md",
        end="folder/C.md",
        shortest=shortest,
        alternatives=[shortest, alternative],
        betweenness={"A.md": 0, "B.md": 10, "folder/C.md": 0},
        clustering={"A.md": 0.5, "B.md": 0.0, "folder/C.md": 1.0},
    )

    markdown = analysis_to_markdown(analysis, source, GENERATED_AT)

    assert markdown.startswith("# Connection Analysis: A → C\n")
    assert "Distance: 2" in markdown
    assert "[[A]] → [[B]] → [[C]]" in markdown
    assert "1. (1 steps) [[A]] #x → [[C]]" in markdown
    assert "- [[B]]: 10/10" in markdown
    assert "- [[A]]: 0/10" not in markdown
    assert "- [[A]]: 50.0%" in markdown
    assert "Analysis generated: 2024-05-01T09:30:15" in markdown
    assert "cancelled" not in markdown


def test_analysis_to_markdown_without_path(source) -> None:
    analysis = PathAnalysis(start="A.md", end="B.md", cancelled=True)

    markdown = analysis_to_markdown(analysis, source, GENERATED_AT)

    assert "No path found between these notes." in markdown
    assert "cancelled" in markdown
    assert "## Alternative Paths" not in markdown


def test_hubs_to_markdown() -> None:
    notes = [
        NoteImportance("Index.md", "Index", 1.0, 3, 2, 5, 0.7, 0.25),
        NoteImportance("Leaf.md", "Leaf", 0.4, 1, 0, 1, 0.1, 0.0),
    ]

    markdown = hubs_to_markdown(notes, GENERATED_AT)

    assert "## Top 2 Hub Notes by PageRank (Overall Importance)" in markdown
    assert "| 1 | [[Index]] | 1.000 | 3 | 2 | 5 | 0.700 | 0.250 |" in markdown
    assert "| 2 | [[Leaf]] | 0.400 | 1 | 0 | 1 | 0.100 | 0.000 |" in markdown


def test_hubs_to_markdown_names_sort_metric() -> None:
    notes = [NoteImportance("Hub.md", "Hub", 0.2, 9, 1, 10, 0.3, 0.0)]

    markdown = hubs_to_markdown(notes, GENERATED_AT, HubMetric.IN_DEGREE)

    assert "## Top 1 Hub Notes by In-Degree (Incoming Links)" in markdown
    assert "PageRank (Overall Importance)" not in markdown


def test_report_file_name_has_no_colons() -> None:
    name = report_file_name("Connection Analysis", GENERATED_AT)

    assert name == "Connection Analysis 2024-05-01T09-30-15.md"


def test_export_report(source) -> None:
    path = export_report(source, "# Report\n", now=GENERATED_AT)

    assert source.notes[path] == "# Report\n"
    with pytest.raises(FileExistsError):
        export_report(source, "# Again\n", now=GENERATED_AT)
