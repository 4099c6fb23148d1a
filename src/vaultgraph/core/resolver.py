"""Resolve free-text note references to canonical note paths."""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import List, Optional, Tuple

from .vault import DocumentSource

logger = logging.getLogger(__name__)


def note_basename(note_path: str) -> str:
    """File stem of a note path (``folder/My Note.md`` -> ``My Note``)."""
    return PurePosixPath(note_path).stem


class NameResolver:
    """Map a wikilink target or user input to a note path.

    Matching tiers, in priority order: exact basename, case-insensitive
    basename, case-insensitive substring. Within a tier the first note in
    source enumeration order wins.
    """

    def __init__(self, source: DocumentSource) -> None:
        self.source = source
        self._index: Optional[List[Tuple[str, str, str]]] = None

    def refresh(self) -> None:
        """Forget the basename index; it is rebuilt on the next lookup."""
        self._index = None

    def _entries(self) -> List[Tuple[str, str, str]]:
        if self._index is None:
            self._index = [
                (path, note_basename(path), note_basename(path).lower())
                for path in self.source.list_documents()
            ]
        return self._index

    def resolve(self, name: str) -> Optional[str]:
        name = (name or "").strip()
        if not name:
            return None

        entries = self._entries()

        if name.endswith(".md") or "/" in name:
            candidate = name if name.endswith(".md") else f"{name}.md"
            for path, _, _ in entries:
                if path == candidate:
                    return path
            name = note_basename(candidate)

        for path, basename, _ in entries:
            if basename == name:
                return path

        lowered = name.lower()
        for path, _, lower_basename in entries:
            if lower_basename == lowered:
                return path

        for path, _, lower_basename in entries:
            if lowered in lower_basename:
                return path

        logger.debug("Unresolved note reference: %s", name)
        return None


__all__ = ["NameResolver", "note_basename"]
