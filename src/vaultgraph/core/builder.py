"""Typed note graph construction.

Turns the notes of a DocumentSource into a Graph:
- Direct edges from [[wikilinks]]
- Embedded edges from ![[embeds]]
- Tag edges between notes sharing tags (top matches only)
- Backlink edges synthesized for edges that have no reverse
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Awaitable, Dict, Iterable, Iterator, List, Optional, Tuple, TypeVar

from ..config import GraphSettings
from .models import (
    CONNECTION_PRIORITY,
    CancellationToken,
    ConnectionInfo,
    ConnectionType,
    EdgeMetadata,
    Graph,
    ProgressCallback,
    is_cancelled,
)
from .resolver import NameResolver, note_basename
from .vault import DocumentSource

logger = logging.getLogger(__name__)

WIKILINK_PATTERN = re.compile(r"(?<!!)\[\[(.*?)(\|.*?)?\]\]")
EMBED_PATTERN = re.compile(r"!\[\[(.*?)(\|.*?)?\]\]")
ANY_LINK_PATTERN = re.compile(r"\[\[(.*?)(\|.*?)?\]\]")

TagIndex = Dict[str, List[str]]
T = TypeVar("T")


def extract_link_targets(text: str, pattern: re.Pattern = WIKILINK_PATTERN) -> List[str]:
    """Link targets in order of appearance, without heading/alias suffixes."""
    targets = []
    for match in pattern.finditer(text or ""):
        link_text = match.group(1).split("#")[0].split("|")[0].strip()
        if link_text:
            targets.append(link_text)
    return targets


def set_edge(adjacency: Dict[str, ConnectionInfo], target: str, info: ConnectionInfo) -> bool:
    """Store an edge unless a higher-priority edge already holds the pair."""
    existing = adjacency.get(target)
    if existing is not None and CONNECTION_PRIORITY[existing.type] > CONNECTION_PRIORITY[info.type]:
        return False
    adjacency[target] = info
    return True


class GraphBuilder:
    """Build the typed adjacency mapping for every note of a source."""

    def __init__(
        self,
        source: DocumentSource,
        settings: GraphSettings,
        resolver: Optional[NameResolver] = None,
    ) -> None:
        self.source = source
        self.settings = settings
        self.resolver = resolver or NameResolver(source)

    async def build(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Graph:
        """Build the whole graph.

        Only a failure to enumerate the notes propagates. When cancelled, the
        graph built so far is returned without the backlink pass.
        """
        graph, _ = await self.build_with_tags(progress, cancel_token)
        return graph

    async def build_with_tags(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Tuple[Graph, TagIndex]:
        """Build the whole graph and return it with the tag index it used."""
        start_time = time.time()
        self.resolver.refresh()
        documents = self.source.list_documents()
        total = len(documents)

        graph: Graph = {path: {} for path in documents}
        tag_index = await self.collect_tags(documents, cancel_token)
        if is_cancelled(cancel_token):
            logger.info("Graph build cancelled while reading tags", extra={"total": total})
            return graph, tag_index

        processed = 0
        failed = 0

        for batch in self._batches(documents):
            results = await self._run_batch(
                self.process_document(path, graph, documents, tag_index) for path in batch
            )
            failed += results.count(False)
            processed += len(batch)

            if progress:
                progress(
                    f"Building graph: {processed}/{total} notes processed...",
                    round(processed / total * 100),
                )

            if is_cancelled(cancel_token):
                logger.info("Graph build cancelled", extra={"processed": processed, "total": total})
                return graph, tag_index

            await asyncio.sleep(0)

        if total == 0 and progress:
            progress("Building graph: 0/0 notes processed...", 100)

        if self.settings.include_backlinks:
            self.add_backlinks(graph, tag_index)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Graph built",
            extra={
                "notes": total,
                "edges": sum(len(edges) for edges in graph.values()),
                "failed_notes": failed,
                "duration_ms": f"{duration_ms:.2f}",
            },
        )
        return graph, tag_index

    async def collect_tags(
        self, documents: List[str], cancel_token: Optional[CancellationToken] = None
    ) -> TagIndex:
        """Tags of every note, read batch by batch.

        Stops after the current batch when cancelled; notes not reached yet
        are missing from the index.
        """
        tag_index: TagIndex = {}
        for batch in self._batches(documents):
            tags = await self._run_batch(self.read_tags(path) for path in batch)
            tag_index.update(zip(batch, tags))

            if is_cancelled(cancel_token):
                break
            await asyncio.sleep(0)
        return tag_index

    async def read_tags(self, path: str) -> List[str]:
        """Tags of one note; an unreadable note has none."""
        try:
            return await asyncio.to_thread(self.source.read_tags, path)
        except Exception as exc:
            logger.warning("Could not read tags for %s: %s", path, exc)
            return []

    def _batches(self, documents: List[str]) -> Iterator[List[str]]:
        batch_size = self.settings.effective_batch_size
        for i in range(0, len(documents), batch_size):
            yield documents[i:i + batch_size]

    async def _run_batch(self, calls: Iterable[Awaitable[T]]) -> List[T]:
        if self.settings.parallel_processing:
            return list(await asyncio.gather(*calls))
        return [await call for call in calls]

    def edge_metadata(self, path: str, tag_index: Optional[TagIndex] = None) -> EdgeMetadata:
        tags = (tag_index or {}).get(path, [])
        return EdgeMetadata(title=note_basename(path), tags=list(tags))

    async def process_document(
        self,
        path: str,
        graph: Graph,
        documents: List[str],
        tag_index: TagIndex,
    ) -> bool:
        """Replace the outgoing edges of one note.

        Returns False when the note could not be read; it then keeps no
        outgoing edges.
        """
        adjacency: Dict[str, ConnectionInfo] = {}
        graph[path] = adjacency

        try:
            content = await asyncio.to_thread(self.source.read_text, path)
        except Exception as exc:
            logger.warning("Error processing note %s: %s", path, exc)
            return False

        link_pattern = WIKILINK_PATTERN if self.settings.include_embedded_links else ANY_LINK_PATTERN
        for target in self._resolve_all(extract_link_targets(content, link_pattern), path):
            set_edge(adjacency, target, ConnectionInfo(
                type=ConnectionType.DIRECT,
                metadata=self.edge_metadata(target, tag_index),
            ))

        if self.settings.include_embedded_links:
            for target in self._resolve_all(extract_link_targets(content, EMBED_PATTERN), path):
                set_edge(adjacency, target, ConnectionInfo(
                    type=ConnectionType.EMBEDDED,
                    metadata=self.edge_metadata(target, tag_index),
                ))

        if self.settings.include_tags:
            for target, common_tags in self.tag_matches(path, documents, tag_index):
                set_edge(adjacency, target, ConnectionInfo(
                    type=ConnectionType.TAG,
                    common_tags=common_tags,
                    metadata=self.edge_metadata(target, tag_index),
                ))

        return True

    def tag_matches(
        self, path: str, documents: List[str], tag_index: TagIndex
    ) -> List[Tuple[str, List[str]]]:
        """Notes sharing tags with ``path``, most shared tags first, capped."""
        own_tags = tag_index.get(path, [])
        if not own_tags:
            return []

        matches: List[Tuple[str, List[str]]] = []
        for other in documents:
            if other == path:
                continue
            other_tags = tag_index.get(other, [])
            if not other_tags:
                continue
            common = [tag for tag in own_tags if tag in other_tags]
            if common:
                matches.append((other, common))

        # sorted() is stable, so enumeration order breaks ties
        matches.sort(key=lambda item: len(item[1]), reverse=True)
        return matches[:self.settings.max_tag_matches]

    def add_backlinks(self, graph: Graph, tag_index: Optional[TagIndex] = None) -> int:
        """Add a backlink for every forward edge whose target has no edge back."""
        added = 0
        forward_edges = [
            (source, target)
            for source, targets in graph.items()
            for target, info in targets.items()
            if info.type != ConnectionType.BACKLINK
        ]
        for source, target in forward_edges:
            target_edges = graph.setdefault(target, {})
            if source not in target_edges:
                target_edges[source] = ConnectionInfo(
                    type=ConnectionType.BACKLINK,
                    metadata=self.edge_metadata(source, tag_index),
                )
                added += 1
        return added

    def _resolve_all(self, names: List[str], path: str) -> List[str]:
        resolved = []
        for name in names:
            target = self.resolver.resolve(name)
            # Self references carry no connection
            if target is not None and target != path:
                resolved.append(target)
        return resolved


__all__ = ["GraphBuilder", "extract_link_targets", "set_edge"]
