"""Time-windowed graph cache with single-note incremental patches."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Union

from ..config import GraphSettings
from .builder import GraphBuilder, TagIndex
from .models import (
    CancellationToken,
    ChangeKind,
    ConnectionInfo,
    ConnectionType,
    Graph,
    ProgressCallback,
    is_cancelled,
)

logger = logging.getLogger(__name__)


class GraphCache:
    """Sole owner of the cached graph.

    ``get``, ``invalidate``, ``patch`` and ``clear`` are the only operations
    that touch the cached state.
    """

    def __init__(
        self,
        builder: GraphBuilder,
        settings: GraphSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.builder = builder
        self.settings = settings
        self.clock = clock
        self._graph: Optional[Graph] = None
        self._tags: TagIndex = {}
        self._built_at: Optional[float] = None

    @property
    def graph(self) -> Optional[Graph]:
        return self._graph

    def is_valid(self) -> bool:
        return (
            self.settings.cache_graph
            and self._graph is not None
            and self._built_at is not None
            and self.clock() - self._built_at < self.settings.cache_ttl_seconds
        )

    async def get(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Graph:
        """Cached graph when still valid, otherwise a fresh build.

        A cancelled build is returned to the caller but never cached.
        """
        if self.is_valid():
            if progress:
                progress("Using cached graph...", 100)
            return self._graph

        graph, tag_index = await self.builder.build_with_tags(progress, cancel_token)

        if self.settings.cache_graph and not is_cancelled(cancel_token):
            self._graph = graph
            self._tags = tag_index
            self._built_at = self.clock()
        return graph

    def invalidate(self) -> None:
        """Force the next ``get`` to rebuild."""
        self._built_at = None

    def clear(self) -> None:
        self._graph = None
        self._tags = {}
        self._built_at = None

    async def patch(self, path: str, change: Union[ChangeKind, str]) -> None:
        """Apply a single-note change to the cached graph.

        Any failure invalidates the cache instead of leaving a stale graph.
        """
        change = ChangeKind(change)

        if not self.settings.cache_graph or self._graph is None:
            self.invalidate()
            return

        graph = self._graph
        try:
            if change == ChangeKind.DELETE:
                graph.pop(path, None)
                self._tags.pop(path, None)
                for edges in graph.values():
                    edges.pop(path, None)
                self.builder.resolver.refresh()
                self._built_at = self.clock()
                return

            if change == ChangeKind.CREATE:
                self.builder.resolver.refresh()
                graph[path] = {}

            # Only the changed note's tags are re-read
            self._tags[path] = await self.builder.read_tags(path)
            if not await self.builder.process_document(path, graph, list(graph), self._tags):
                raise OSError(f"Could not read {path}")

            if self.settings.include_backlinks:
                self._refresh_backlinks(graph, path, self._tags)

            self._built_at = self.clock()
            logger.debug("Patched cached graph", extra={"note_path": path, "change": change.value})
        except Exception:
            logger.exception("Error updating graph cache for %s", path)
            self.invalidate()

    def _refresh_backlinks(self, graph: Graph, path: str, tag_index: TagIndex) -> None:
        """Bring backlinks touching ``path`` in line with a full rebuild."""
        own_edges = graph[path]

        for other, edges in graph.items():
            if other == path:
                continue
            existing = edges.get(path)
            forward = own_edges.get(other)
            if existing is not None and existing.type == ConnectionType.BACKLINK:
                if forward is None or forward.type == ConnectionType.BACKLINK:
                    del edges[path]
            elif existing is None and forward is not None and forward.type != ConnectionType.BACKLINK:
                edges[path] = ConnectionInfo(
                    type=ConnectionType.BACKLINK,
                    metadata=self.builder.edge_metadata(path, tag_index),
                )

        for other, edges in graph.items():
            if other == path or other in own_edges:
                continue
            incoming = edges.get(path)
            if incoming is not None and incoming.type != ConnectionType.BACKLINK:
                own_edges[other] = ConnectionInfo(
                    type=ConnectionType.BACKLINK,
                    metadata=self.builder.edge_metadata(other, tag_index),
                )


__all__ = ["GraphCache"]
