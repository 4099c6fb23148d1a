from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

from vaultgraph.config import GraphSettings
from vaultgraph.core.models import ConnectionInfo, ConnectionType, Graph


class InMemorySource:
    """DocumentSource over a dict of note path -> text."""

    def __init__(
        self,
        notes: Dict[str, str],
        tags: Optional[Dict[str, List[str]]] = None,
        failing: Iterable[str] = (),
        fail_listing: bool = False,
    ) -> None:
        self.notes = dict(notes)
        self.tags = dict(tags or {})
        self.failing = set(failing)
        self.fail_listing = fail_listing
        self.tag_reads: List[str] = []

    def list_documents(self) -> List[str]:
        if self.fail_listing:
            raise OSError("vault unavailable")
        return list(self.notes)

    def read_text(self, path: str) -> str:
        if path in self.failing:
            raise OSError(f"cannot read {path}")
        return self.notes[path]

    def read_tags(self, path: str) -> List[str]:
        self.tag_reads.append(path)
        return list(self.tags.get(path, []))

    def exists(self, path: str) -> bool:
        return path in self.notes

    def create_document(self, path: str, text: str) -> str:
        if path in self.notes:
            raise FileExistsError(path)
        self.notes[path] = text
        return path


@pytest.fixture
def make_settings(tmp_path: Path):
    """Settings rooted at tmp_path, ignoring any .env file."""
    def _make(**overrides) -> GraphSettings:
        overrides.setdefault("vault_path", tmp_path)
        return GraphSettings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def settings(make_settings) -> GraphSettings:
    return make_settings()


@pytest.fixture
def make_source():
    return InMemorySource


@pytest.fixture
def chain_source() -> InMemorySource:
    """A -> B -> C via wikilinks."""
    return InMemorySource({"A.md": "See [[B]]", "B.md": "Then [[C]]", "C.md": "The end"})


@pytest.fixture
def write_note(tmp_path: Path):
    def _write(relative: str, text: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def graph_from():
    """Build a Graph from {node: {target: "direct" | "backlink" | ...}}."""
    def _build(edges: Dict[str, Dict[str, str]]) -> Graph:
        graph: Graph = {}
        for source, targets in edges.items():
            graph.setdefault(source, {})
            for target, kind in targets.items():
                graph.setdefault(target, {})
                graph[source][target] = ConnectionInfo(type=ConnectionType(kind))
        return graph

    return _build
