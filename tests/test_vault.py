from pathlib import Path

import pytest

from vaultgraph.core.vault import (
    VaultDocumentSource,
    extract_tags,
    normalize_tag,
    validate_note_path,
)


def test_list_documents_sorted_and_skips_hidden(tmp_path: Path, write_note) -> None:
    write_note("b.md", "")
    write_note("A.md", "")
    write_note("folder/c.md", "")
    write_note(".obsidian/workspace.md", "")
    write_note("notes.txt", "")

    source = VaultDocumentSource(tmp_path)

    assert source.list_documents() == ["A.md", "b.md", "folder/c.md"]


def test_list_documents_missing_root(tmp_path: Path) -> None:
    source = VaultDocumentSource(tmp_path / "missing")

    with pytest.raises(FileNotFoundError):
        source.list_documents()


def test_read_tags_merges_frontmatter_and_inline(tmp_path: Path, write_note) -> None:
    write_note(
        "note.md",
        "---\ntags: [Dev, \"#docs\"]\n---\n# Heading\n\nWorking on #project and #ideas/sub.\n",
    )

    source = VaultDocumentSource(tmp_path)

    assert source.read_tags("note.md") == ["dev", "docs", "project", "ideas/sub"]


def test_extract_tags_string_frontmatter() -> None:
    assert extract_tags({"tags": "alpha, beta gamma"}, "") == ["alpha", "beta", "gamma"]


def test_extract_tags_deduplicates() -> None:
    assert extract_tags({"tags": ["Alpha"]}, "more #alpha and #ALPHA") == ["alpha"]


def test_inline_tags_ignore_anchors_and_headings() -> None:
    body = "# Title\n[link](page#section) and a#b but #real"

    assert extract_tags({}, body) == ["real"]


def test_normalize_tag() -> None:
    assert normalize_tag("  #Tag ") == "tag"
    assert normalize_tag(3) == ""


def test_validate_note_path() -> None:
    assert validate_note_path("folder/note.md") == (True, "")
    assert validate_note_path("../escape.md")[0] is False
    assert validate_note_path("/abs.md")[0] is False
    assert validate_note_path("note.txt")[0] is False


def test_resolve_blocks_escape(tmp_path: Path) -> None:
    source = VaultDocumentSource(tmp_path)

    with pytest.raises(ValueError):
        source.resolve("../outside.md")


def test_exists(tmp_path: Path, write_note) -> None:
    write_note("note.md", "hello")
    source = VaultDocumentSource(tmp_path)

    assert source.exists("note.md")
    assert not source.exists("other.md")
    assert not source.exists("../note.md")


def test_create_document_never_overwrites(tmp_path: Path) -> None:
    source = VaultDocumentSource(tmp_path)

    path = source.create_document("reports/new.md", "# Report")

    assert path == "reports/new.md"
    assert source.read_text(path) == "# Report"
    with pytest.raises(FileExistsError):
        source.create_document("reports/new.md", "again")
    assert source.read_text(path) == "# Report"
