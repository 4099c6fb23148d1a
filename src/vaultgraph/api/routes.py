"""Graph, path and hub endpoints.

Vault read failures (OSError) are rendered by the registered error handlers.
"""

from __future__ import annotations

from functools import lru_cache
import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import get_settings
from ..core.models import HubMetric
from ..core.service import GraphService
from ..core.vault import VaultDocumentSource
from .schemas import GraphData, HubNote, PathModel, PathsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache(maxsize=1)
def get_graph_service() -> GraphService:
    """Session-wide service for the configured vault."""
    settings = get_settings()
    return GraphService(VaultDocumentSource(settings.vault_path), settings)


ServiceDep = Annotated[GraphService, Depends(get_graph_service)]


@router.get("/api/graph", response_model=GraphData)
async def get_graph_data(service: ServiceDep) -> GraphData:
    """Retrieve graph visualization data."""
    graph = await service.get_graph()
    return GraphData.from_graph(graph)


@router.get("/api/paths", response_model=PathsResponse)
async def get_paths(
    service: ServiceDep,
    start: Annotated[str, Query(min_length=1)],
    end: Annotated[str, Query(min_length=1)],
    max_paths: Annotated[Optional[int], Query(ge=1, le=50)] = None,
) -> PathsResponse:
    """Shortest and alternative paths between two notes (names or paths)."""
    start_path = service.resolve(start)
    end_path = service.resolve(end)
    missing = [name for name, path in ((start, start_path), (end, end_path)) if path is None]
    if missing:
        raise HTTPException(
            status_code=404,
            detail={"error": "note_not_found", "message": "One or both notes not found",
                    "detail": {"names": missing}},
        )

    graph = await service.get_graph()
    paths = service.find_all_paths(graph, start_path, end_path, max_paths)
    shortest = paths[0] if paths else service.find_shortest_path(graph, start_path, end_path)
    logger.debug("Paths served", extra={"start": start_path, "end": end_path, "paths": len(paths)})
    return PathsResponse(
        start=start_path,
        end=end_path,
        shortest=PathModel.from_result(shortest),
        alternatives=[PathModel.from_result(result) for result in paths[1:]],
    )


@router.get("/api/hubs", response_model=List[HubNote])
async def get_hubs(
    service: ServiceDep,
    count: Annotated[int, Query(ge=1, le=500)] = 20,
    sort_by: Annotated[HubMetric, Query()] = HubMetric.PAGE_RANK,
) -> List[HubNote]:
    """Notes ranked by a hub metric, PageRank by default."""
    metrics = await service.calculate_hub_metrics()
    return [
        HubNote.from_importance(note)
        for note in service.rank_hub_notes(metrics, count, sort_by)
    ]
