"""In-memory graph types shared by the builder, path finder and metrics."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional


# ============================================================================
# Enumerations
# ============================================================================

class ConnectionType(str, Enum):
    """Why an edge exists."""
    DIRECT = "direct"  # [[wikilink]] in the source text
    BACKLINK = "backlink"  # synthesized reverse of another edge
    TAG = "tag"  # shared tags
    EMBEDDED = "embedded"  # ![[embed]] in the source text


class ChangeKind(str, Enum):
    """Single-document change notification kinds."""
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


class HubMetric(str, Enum):
    """Field hub notes can be ranked by."""
    PAGE_RANK = "page_rank"
    IN_DEGREE = "in_degree"
    OUT_DEGREE = "out_degree"
    TOTAL_DEGREE = "total_degree"
    EIGENVECTOR_CENTRALITY = "eigenvector_centrality"
    BRIDGING_COEFFICIENT = "bridging_coefficient"

    @property
    def label(self) -> str:
        return HUB_METRIC_LABELS[self]


HUB_METRIC_LABELS: Dict[HubMetric, str] = {
    HubMetric.PAGE_RANK: "PageRank (Overall Importance)",
    HubMetric.IN_DEGREE: "In-Degree (Incoming Links)",
    HubMetric.OUT_DEGREE: "Out-Degree (Outgoing Links)",
    HubMetric.TOTAL_DEGREE: "Total Connections",
    HubMetric.EIGENVECTOR_CENTRALITY: "Eigenvector Centrality",
    HubMetric.BRIDGING_COEFFICIENT: "Bridging Coefficient",
}


# Lower-priority edges never replace higher-priority ones on the same pair.
CONNECTION_PRIORITY: Dict[ConnectionType, int] = {
    ConnectionType.DIRECT: 3,
    ConnectionType.EMBEDDED: 2,
    ConnectionType.TAG: 1,
    ConnectionType.BACKLINK: 0,
}


# ============================================================================
# Value Objects
# ============================================================================

@dataclass
class EdgeMetadata:
    """Snapshot of the target note taken when the edge was built."""
    title: str
    tags: List[str] = field(default_factory=list)


@dataclass
class ConnectionInfo:
    """Payload stored on one directed edge."""
    type: ConnectionType
    common_tags: Optional[List[str]] = None  # tag edges only
    metadata: Optional[EdgeMetadata] = None

    def reversed(self) -> "ConnectionInfo":
        """Copy describing the same edge read in the opposite direction.

        Direct and backlink swap; tag and embedded pass through.
        """
        if self.type == ConnectionType.DIRECT:
            return replace(self, type=ConnectionType.BACKLINK)
        if self.type == ConnectionType.BACKLINK:
            return replace(self, type=ConnectionType.DIRECT)
        return replace(self)


# Node path -> (target path -> edge payload)
Graph = Dict[str, Dict[str, ConnectionInfo]]

# (stage description, completion percentage 0-100)
ProgressCallback = Callable[[str, float], None]


@dataclass
class PathResult:
    """A path between two notes.

    ``connection_types[i]`` describes the edge from ``path[i]`` to
    ``path[i + 1]``. A distance of -1 means no path exists.
    """
    distance: int
    path: List[str] = field(default_factory=list)
    connection_types: List[ConnectionInfo] = field(default_factory=list)

    @classmethod
    def not_found(cls) -> "PathResult":
        return cls(distance=-1, path=[], connection_types=[])

    @property
    def found(self) -> bool:
        return self.distance >= 0


@dataclass
class HubMetrics:
    """Whole-graph importance metrics, each keyed by every node.

    A cancelled run carries empty maps and ``cancelled=True``.
    """
    page_rank: Dict[str, float]
    in_degree: Dict[str, int]
    out_degree: Dict[str, int]
    total_degree: Dict[str, int]
    eigenvector_centrality: Dict[str, float]
    bridging_coefficient: Dict[str, float]
    cancelled: bool = False

    @classmethod
    def empty(cls, cancelled: bool = False) -> "HubMetrics":
        return cls({}, {}, {}, {}, {}, {}, cancelled=cancelled)


@dataclass
class NoteImportance:
    """Per-note projection of HubMetrics used for ranking."""
    path: str
    basename: str
    page_rank: float
    in_degree: int
    out_degree: int
    total_degree: int
    eigenvector_centrality: float
    bridging_coefficient: float


@dataclass
class PathAnalysis:
    """Outcome of a full path analysis between two notes.

    When ``cancelled`` is set the remaining fields hold whatever was computed
    before cancellation and must not be read as a final answer.
    """
    start: str
    end: str
    shortest: PathResult = field(default_factory=PathResult.not_found)
    alternatives: List[PathResult] = field(default_factory=list)
    betweenness: Dict[str, float] = field(default_factory=dict)
    clustering: Dict[str, float] = field(default_factory=dict)
    graph_build_ms: float = 0.0
    cancelled: bool = False


class CancellationToken:
    """Externally settable flag checked at batch boundaries."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def reset(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled


__all__ = [
    "ConnectionType",
    "ChangeKind",
    "HubMetric",
    "HUB_METRIC_LABELS",
    "CONNECTION_PRIORITY",
    "EdgeMetadata",
    "ConnectionInfo",
    "Graph",
    "ProgressCallback",
    "PathResult",
    "HubMetrics",
    "NoteImportance",
    "PathAnalysis",
    "CancellationToken",
    "is_cancelled",
]
