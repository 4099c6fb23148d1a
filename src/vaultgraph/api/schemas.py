"""Response models for the HTTP API."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.models import ConnectionInfo, ConnectionType, Graph, NoteImportance, PathResult
from ..core.resolver import note_basename


class GraphNode(BaseModel):
    """One note, sized by how many edges point at it."""
    id: str = Field(..., description="Vault-relative note path")
    label: str = Field(..., description="Note basename")
    val: int = Field(default=1, ge=1, description="Incoming edge count, at least 1")
    group: str = Field(..., description="Top-level folder, or \"root\"")


class GraphLink(BaseModel):
    """One typed edge of the note graph."""
    source: str = Field(..., description="Path of the note holding the edge")
    target: str = Field(..., description="Path of the note the edge points to")
    type: ConnectionType = Field(..., description="Why the connection exists")


class GraphData(BaseModel):
    """The top-level graph payload."""
    nodes: List[GraphNode]
    links: List[GraphLink]

    @classmethod
    def from_graph(cls, graph: Graph) -> "GraphData":
        in_degree: Dict[str, int] = {node: 0 for node in graph}
        links: List[GraphLink] = []
        for source, targets in graph.items():
            for target, info in targets.items():
                in_degree[target] = in_degree.get(target, 0) + 1
                links.append(GraphLink(source=source, target=target, type=info.type))

        nodes = []
        for node in graph:
            parts = PurePosixPath(node).parts
            nodes.append(GraphNode(
                id=node,
                label=note_basename(node),
                val=max(1, in_degree.get(node, 0)),
                group=parts[0] if len(parts) > 1 else "root",
            ))
        return cls(nodes=nodes, links=links)


class Connection(BaseModel):
    type: ConnectionType
    common_tags: Optional[List[str]] = None
    title: Optional[str] = None

    @classmethod
    def from_info(cls, info: ConnectionInfo) -> "Connection":
        return cls(
            type=info.type,
            common_tags=info.common_tags,
            title=info.metadata.title if info.metadata else None,
        )


class PathModel(BaseModel):
    distance: int = Field(..., ge=-1, description="Hop count, -1 when no path exists")
    path: List[str]
    connection_types: List[Connection]

    @classmethod
    def from_result(cls, result: PathResult) -> "PathModel":
        return cls(
            distance=result.distance,
            path=list(result.path),
            connection_types=[Connection.from_info(info) for info in result.connection_types],
        )


class PathsResponse(BaseModel):
    start: str
    end: str
    shortest: PathModel
    alternatives: List[PathModel]


class HubNote(BaseModel):
    path: str
    basename: str
    page_rank: float
    in_degree: int
    out_degree: int
    total_degree: int
    eigenvector_centrality: float
    bridging_coefficient: float

    @classmethod
    def from_importance(cls, note: NoteImportance) -> "HubNote":
        return cls(**vars(note))


__all__ = [
    "GraphNode",
    "GraphLink",
    "GraphData",
    "Connection",
    "PathModel",
    "PathsResponse",
    "HubNote",
]
