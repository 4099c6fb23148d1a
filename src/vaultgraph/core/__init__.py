"""Note graph construction and analytics.

1. Document source (vault.py):
   - Markdown vault on disk, tags from frontmatter and inline #tags

2. Graph builder (builder.py):
   - Direct, embedded, tag and backlink edges with per-edge provenance

3. Path finder (paths.py):
   - Shortest path via BFS or bidirectional BFS, randomized alternative paths

4. Metrics (centrality.py, hubs.py):
   - Degree, PageRank, eigenvector, bridging; sampled betweenness and clustering

5. Cache and service (cache.py, service.py):
   - Time-windowed graph cache with incremental patches, session facade

Example Usage:

    import asyncio
    from vaultgraph.core import GraphService, VaultDocumentSource

    service = GraphService(VaultDocumentSource("~/notes"))
    analysis = asyncio.run(service.analyze_path("Projects", "Ideas"))
    print(analysis.shortest.path)
"""

from .builder import GraphBuilder, extract_link_targets
from .cache import GraphCache
from .centrality import (
    calculate_betweenness_centrality,
    calculate_bridging_coefficient,
    calculate_clustering_coefficient,
    calculate_degree_centrality,
    calculate_eigenvector_centrality,
    calculate_page_rank,
    get_neighbors,
)
from .hubs import HubDetectionService
from .models import (
    CancellationToken,
    ChangeKind,
    ConnectionInfo,
    ConnectionType,
    EdgeMetadata,
    Graph,
    HubMetrics,
    NoteImportance,
    PathAnalysis,
    PathResult,
)
from .paths import PathFinder
from .resolver import NameResolver
from .service import GraphService, NoteNotFoundError
from .vault import DocumentSource, VaultDocumentSource

__all__ = [
    "GraphBuilder",
    "extract_link_targets",
    "GraphCache",
    "calculate_betweenness_centrality",
    "calculate_bridging_coefficient",
    "calculate_clustering_coefficient",
    "calculate_degree_centrality",
    "calculate_eigenvector_centrality",
    "calculate_page_rank",
    "get_neighbors",
    "HubDetectionService",
    "CancellationToken",
    "ChangeKind",
    "ConnectionInfo",
    "ConnectionType",
    "EdgeMetadata",
    "Graph",
    "HubMetrics",
    "NoteImportance",
    "PathAnalysis",
    "PathResult",
    "PathFinder",
    "NameResolver",
    "GraphService",
    "NoteNotFoundError",
    "DocumentSource",
    "VaultDocumentSource",
]
