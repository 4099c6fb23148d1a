"""Hub detection: whole-vault importance metrics and rankings."""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from .cache import GraphCache
from .centrality import (
    calculate_bridging_coefficient,
    calculate_degree_centrality,
    calculate_eigenvector_centrality,
    calculate_page_rank,
)
from .models import (
    CancellationToken,
    HubMetric,
    HubMetrics,
    NoteImportance,
    ProgressCallback,
    is_cancelled,
)
from .resolver import note_basename

logger = logging.getLogger(__name__)


class HubDetectionService:
    """Compute HubMetrics for the cached graph and rank notes by them."""

    def __init__(self, cache: GraphCache) -> None:
        self.cache = cache

    async def calculate_hub_metrics(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HubMetrics:
        def report(message: str, percent: float) -> None:
            if progress:
                progress(message, percent)

        report("Building graph for hub analysis...", 0)
        graph = await self.cache.get(
            (lambda message, percent: report(message, percent * 3 / 10)) if progress else None,
            cancel_token,
        )

        if is_cancelled(cancel_token):
            logger.info("Hub analysis cancelled during graph build")
            return HubMetrics.empty(cancelled=True)

        report("Calculating basic connectivity metrics...", 30)
        in_degree, out_degree, total_degree = calculate_degree_centrality(graph)

        report("Running PageRank algorithm...", 40)
        page_rank = calculate_page_rank(graph)

        report("Calculating eigenvector centrality...", 60)
        eigenvector = calculate_eigenvector_centrality(graph)

        report("Calculating bridging coefficient...", 80)
        bridging = calculate_bridging_coefficient(graph)

        report("Hub metrics calculation complete", 100)
        logger.info("Hub metrics calculated", extra={"notes": len(graph)})

        return HubMetrics(
            page_rank=page_rank,
            in_degree=in_degree,
            out_degree=out_degree,
            total_degree=total_degree,
            eigenvector_centrality=eigenvector,
            bridging_coefficient=bridging,
        )

    @staticmethod
    def get_top_hub_notes(metrics: HubMetrics, count: int) -> List[NoteImportance]:
        """Top ``count`` notes by PageRank; ties keep metric order."""
        return HubDetectionService.rank_hub_notes(metrics, count, HubMetric.PAGE_RANK)

    @staticmethod
    def rank_hub_notes(
        metrics: HubMetrics,
        count: int,
        sort_by: Union[HubMetric, str] = HubMetric.PAGE_RANK,
    ) -> List[NoteImportance]:
        """Top ``count`` notes by ``sort_by``, highest first; ties keep metric order."""
        sort_by = HubMetric(sort_by)
        notes = [
            NoteImportance(
                path=path,
                basename=note_basename(path),
                page_rank=rank,
                in_degree=metrics.in_degree.get(path, 0),
                out_degree=metrics.out_degree.get(path, 0),
                total_degree=metrics.total_degree.get(path, 0),
                eigenvector_centrality=metrics.eigenvector_centrality.get(path, 0.0),
                bridging_coefficient=metrics.bridging_coefficient.get(path, 0.0),
            )
            for path, rank in metrics.page_rank.items()
        ]
        notes.sort(key=lambda note: getattr(note, sort_by.value), reverse=True)
        return notes[:max(count, 0)]


__all__ = ["HubDetectionService"]
