"""Document sources: where notes, their text and their tags come from."""

from __future__ import annotations

import logging
from pathlib import Path
import re
from typing import Any, List, Protocol, Tuple

import frontmatter

logger = logging.getLogger(__name__)

INVALID_PATH_CHARS = {'<', '>', ':', '"', '|', '?', '*'}
INLINE_TAG_PATTERN = re.compile(r"(?<![\w#/&])#([A-Za-z_][\w/-]*)")
TAG_SPLIT_PATTERN = re.compile(r"[,\s]+")


class DocumentSource(Protocol):
    """Protocol for the collaborator that owns the notes.

    ``list_documents`` must return the same order for the duration of one
    build; that order is the tie-breaker for name resolution and tag ranking.
    """

    def list_documents(self) -> List[str]: ...

    def read_text(self, path: str) -> str: ...

    def read_tags(self, path: str) -> List[str]: ...

    def exists(self, path: str) -> bool: ...

    def create_document(self, path: str, text: str) -> str: ...


def normalize_tag(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.strip().lstrip("#").strip().lower()


def validate_note_path(note_path: str) -> Tuple[bool, str]:
    """
    Validate a relative Markdown path.

    Returns (is_valid, message). Message is empty when valid.
    """
    if not note_path or len(note_path) > 256:
        return False, "Path must be 1-256 characters"
    if not note_path.endswith(".md"):
        return False, "Path must end with .md"
    if ".." in note_path:
        return False, "Path must not contain '..'"
    if "\\" in note_path:
        return False, "Path must use Unix separators (/)"
    if note_path.startswith("/"):
        return False, "Path must be relative (no leading /)"
    if any(char in INVALID_PATH_CHARS for char in note_path):
        return False, "Path contains invalid characters"
    return True, ""


def extract_tags(metadata: dict, body: str) -> List[str]:
    """Frontmatter tags followed by inline #tags, normalized and deduplicated."""
    raw: List[Any] = []
    declared = metadata.get("tags")
    if isinstance(declared, str):
        raw.extend(TAG_SPLIT_PATTERN.split(declared))
    elif isinstance(declared, list):
        raw.extend(declared)
    raw.extend(match.group(1) for match in INLINE_TAG_PATTERN.finditer(body or ""))

    tags: List[str] = []
    for tag in raw:
        cleaned = normalize_tag(tag)
        if cleaned and cleaned not in tags:
            tags.append(cleaned)
    return tags


class VaultDocumentSource:
    """Markdown files under a directory, identified by vault-relative POSIX path."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser().resolve()

    def list_documents(self) -> List[str]:
        """Every ``*.md`` file outside hidden directories, sorted case-insensitively.

        Raises OSError if the vault root cannot be read.
        """
        if not self.root.is_dir():
            raise FileNotFoundError(f"Vault not found: {self.root}")
        paths: List[str] = []
        for file_path in self.root.rglob("*.md"):
            relative = file_path.relative_to(self.root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if file_path.is_file():
                paths.append(relative.as_posix())
        return sorted(paths, key=lambda item: (item.lower(), item))

    def resolve(self, note_path: str) -> Path:
        """
        Validate and resolve a note path inside the vault.

        Raises ValueError for invalid paths or paths escaping the root.
        """
        is_valid, message = validate_note_path(note_path)
        if not is_valid:
            raise ValueError(message)
        full_path = (self.root / note_path).resolve()
        if not full_path.is_relative_to(self.root):
            raise ValueError(f"Path escapes vault root: {note_path}")
        return full_path

    def read_text(self, path: str) -> str:
        return self.resolve(path).read_text(encoding="utf-8")

    def read_tags(self, path: str) -> List[str]:
        post = frontmatter.load(self.resolve(path))
        return extract_tags(dict(post.metadata or {}), post.content or "")

    def exists(self, path: str) -> bool:
        try:
            return self.resolve(path).is_file()
        except ValueError:
            return False

    def create_document(self, path: str, text: str) -> str:
        """Create a new note and return its path. Existing notes are never overwritten."""
        absolute_path = self.resolve(path)
        if absolute_path.exists():
            raise FileExistsError(f"Note already exists: {path}")
        absolute_path.parent.mkdir(parents=True, exist_ok=True)
        absolute_path.write_text(text, encoding="utf-8")
        logger.info("Note created", extra={"note_path": path})
        return path


__all__ = [
    "DocumentSource",
    "VaultDocumentSource",
    "extract_tags",
    "normalize_tag",
    "validate_note_path",
]
