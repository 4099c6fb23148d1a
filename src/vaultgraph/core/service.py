"""Graph service: one session's resolver, builder, cache and analyses."""

from __future__ import annotations

import logging
import random
import time
from typing import Dict, List, Optional, Sequence, Union

from ..config import GraphSettings, get_settings
from .builder import GraphBuilder
from .cache import GraphCache
from .centrality import calculate_betweenness_centrality, calculate_clustering_coefficient
from .hubs import HubDetectionService
from .models import (
    CancellationToken,
    ChangeKind,
    Graph,
    HubMetric,
    HubMetrics,
    NoteImportance,
    PathAnalysis,
    PathResult,
    ProgressCallback,
    is_cancelled,
)
from .paths import PathFinder
from .resolver import NameResolver
from .vault import DocumentSource

logger = logging.getLogger(__name__)


class NoteNotFoundError(LookupError):
    """A note name did not resolve to any note in the vault."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Note not found: {name}")
        self.name = name


class GraphService:
    """Callers' entry point for graph construction and analysis."""

    def __init__(
        self,
        source: DocumentSource,
        settings: Optional[GraphSettings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.source = source
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()
        self.resolver = NameResolver(source)
        self.builder = GraphBuilder(source, self.settings, self.resolver)
        self.cache = GraphCache(self.builder, self.settings)
        self.finder = PathFinder(self.settings, self.rng)
        self.hubs = HubDetectionService(self.cache)

    # Graph access

    async def build_graph(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Graph:
        return await self.builder.build(progress, cancel_token)

    async def get_graph(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Graph:
        return await self.cache.get(progress, cancel_token)

    async def update_graph_cache(self, path: str, change: Union[ChangeKind, str]) -> None:
        await self.cache.patch(path, change)

    async def rebuild_graph_cache(self) -> Graph:
        self.cache.clear()
        return await self.cache.get()

    def resolve(self, name: str) -> Optional[str]:
        return self.resolver.resolve(name)

    # Paths

    def find_shortest_path(self, graph: Graph, start: str, end: str) -> PathResult:
        return self.finder.find_shortest_path(graph, start, end)

    def find_all_paths(
        self, graph: Graph, start: str, end: str, max_paths: Optional[int] = None
    ) -> List[PathResult]:
        return self.finder.find_all_paths(graph, start, end, max_paths)

    # Metrics

    async def calculate_hub_metrics(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HubMetrics:
        return await self.hubs.calculate_hub_metrics(progress, cancel_token)

    def get_top_hub_notes(self, metrics: HubMetrics, count: int) -> List[NoteImportance]:
        return self.hubs.get_top_hub_notes(metrics, count)

    def rank_hub_notes(
        self,
        metrics: HubMetrics,
        count: int,
        sort_by: Union[HubMetric, str] = HubMetric.PAGE_RANK,
    ) -> List[NoteImportance]:
        return self.hubs.rank_hub_notes(metrics, count, sort_by)

    async def calculate_betweenness_centrality(
        self,
        graph: Graph,
        path: Sequence[str],
        cancel_token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, float]:
        return await calculate_betweenness_centrality(
            graph, path, self.finder, self.rng, cancel_token, progress
        )

    async def calculate_clustering_coefficient(
        self,
        graph: Graph,
        path: Sequence[str],
        cancel_token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, float]:
        return await calculate_clustering_coefficient(graph, path, cancel_token, progress)

    # Workflow

    async def analyze_path(
        self,
        start_name: str,
        end_name: str,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
        max_paths: Optional[int] = None,
    ) -> PathAnalysis:
        """Resolve two notes and run every path analysis between them.

        Raises NoteNotFoundError when either name does not resolve. Returns a
        result with ``cancelled=True`` as soon as the token is set.
        """
        def report(message: str, percent: float) -> None:
            if progress:
                progress(message, percent)

        start = self.resolve(start_name)
        if start is None:
            raise NoteNotFoundError(start_name)
        end = self.resolve(end_name)
        if end is None:
            raise NoteNotFoundError(end_name)

        analysis = PathAnalysis(start=start, end=end)

        report("Building the note graph...", 10)
        started = time.perf_counter()
        graph = await self.get_graph(
            (lambda message, percent: report(message, 10 + percent * 3 / 10)) if progress else None,
            cancel_token,
        )
        analysis.graph_build_ms = (time.perf_counter() - started) * 1000
        if is_cancelled(cancel_token):
            analysis.cancelled = True
            return analysis

        report(f"Analyzing connections (graph built in {analysis.graph_build_ms:.0f}ms)...", 40)
        analysis.shortest = self.find_shortest_path(graph, start, end)

        report("Calculating network metrics...", 50)
        analysis.betweenness = await self.calculate_betweenness_centrality(
            graph, analysis.shortest.path, cancel_token,
            (lambda message, percent: report(message, 65 + percent * 5 / 100)) if progress else None,
        )
        if is_cancelled(cancel_token):
            analysis.cancelled = True
            return analysis

        analysis.clustering = await self.calculate_clustering_coefficient(
            graph, analysis.shortest.path, cancel_token,
            (lambda message, percent: report(message, 75 + percent * 5 / 100)) if progress else None,
        )
        if is_cancelled(cancel_token):
            analysis.cancelled = True
            return analysis

        report("Finding alternative paths...", 80)
        analysis.alternatives = self.find_all_paths(graph, start, end, max_paths)

        report("Analysis complete", 100)
        logger.info(
            "Path analysis complete",
            extra={
                "start": start,
                "end": end,
                "distance": analysis.shortest.distance,
                "paths": len(analysis.alternatives),
            },
        )
        return analysis

    def close(self) -> None:
        """End the session and release the cached graph."""
        self.cache.clear()


__all__ = ["GraphService", "NoteNotFoundError"]
