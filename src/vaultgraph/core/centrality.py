"""Centrality and structural metrics over a note Graph.

Whole-graph metrics (degree, PageRank, eigenvector, bridging) run to
completion without yielding. Path-scoped metrics (betweenness, clustering)
are sampled, processed in batches, and stop early when cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from typing import Dict, List, Optional, Sequence, Tuple

from .models import CancellationToken, Graph, ProgressCallback, is_cancelled
from .paths import PathFinder

logger = logging.getLogger(__name__)

EIGENVECTOR_NORM_FLOOR = 1e-10

BETWEENNESS_BATCH_SIZE = 5
BETWEENNESS_MIN_SAMPLES = 15
BETWEENNESS_MAX_SAMPLES = 30
EXHAUSTIVE_PAIRS_BELOW = 10  # notes

CLUSTERING_BATCH_SIZE = 3
MAX_NEIGHBORS_TO_CHECK = 15


# ============================================================================
# Neighbourhood helpers
# ============================================================================

def build_incoming_index(graph: Graph) -> Dict[str, List[str]]:
    """target -> sources holding an edge to it, in graph order."""
    incoming: Dict[str, List[str]] = {}
    for source, targets in graph.items():
        for target in targets:
            incoming.setdefault(target, []).append(source)
    return incoming


def get_neighbors(
    graph: Graph, node: str, incoming: Optional[Dict[str, List[str]]] = None
) -> List[str]:
    """Undirected neighbourhood: outgoing targets, then incoming sources.

    Only used by clustering-style measures; path search respects direction.
    """
    if incoming is None:
        incoming = build_incoming_index(graph)
    neighbors: Dict[str, None] = {}
    for target in graph.get(node, {}):
        if target != node:
            neighbors[target] = None
    for source in incoming.get(node, []):
        if source != node:
            neighbors[source] = None
    return list(neighbors)


def has_connection(graph: Graph, node1: str, node2: str) -> bool:
    """True when an edge exists in either direction."""
    return node2 in graph.get(node1, {}) or node1 in graph.get(node2, {})


def _count_connected_pairs(graph: Graph, nodes: Sequence[str]) -> int:
    connections = 0
    for i in range(len(nodes)):
        for j in range(i + 1, len(nodes)):
            if has_connection(graph, nodes[i], nodes[j]):
                connections += 1
    return connections


# ============================================================================
# Whole-graph metrics
# ============================================================================

def calculate_degree_centrality(
    graph: Graph,
) -> Tuple[Dict[str, int], Dict[str, int], Dict[str, int]]:
    """Return (in_degree, out_degree, total_degree) for every node."""
    in_degree: Dict[str, int] = {node: 0 for node in graph}
    out_degree: Dict[str, int] = {node: 0 for node in graph}

    for node, edges in graph.items():
        out_degree[node] = len(edges)
        for neighbor in edges:
            in_degree[neighbor] = in_degree.get(neighbor, 0) + 1

    total_degree = {
        node: in_degree.get(node, 0) + out_degree.get(node, 0) for node in graph
    }
    return in_degree, out_degree, total_degree


def page_rank_step(
    graph: Graph, previous: Dict[str, float], damping: float = 0.85
) -> Dict[str, float]:
    """One power iteration: link mass, dangling mass, then teleportation.

    The returned values sum to the same total as ``previous``.
    """
    nodes = list(graph)
    node_count = len(nodes)
    ranks = {node: 0.0 for node in nodes}

    dangling_mass = 0.0
    for node, edges in graph.items():
        if edges:
            share = previous[node] / len(edges)
            for neighbor in edges:
                ranks[neighbor] = ranks.get(neighbor, 0.0) + damping * share
        else:
            dangling_mass += previous[node] / node_count

    base_value = (1 - damping) / node_count + damping * dangling_mass
    for node in nodes:
        ranks[node] += base_value
    return ranks


def calculate_page_rank(
    graph: Graph,
    damping: float = 0.85,
    max_iterations: int = 50,
    tolerance: float = 1e-4,
) -> Dict[str, float]:
    """Power-iteration PageRank, rescaled so the highest value is 1.

    Dangling nodes spread their rank evenly over every node.
    """
    if not graph:
        return {}

    node_count = len(graph)
    ranks = {node: 1.0 / node_count for node in graph}

    for iteration in range(max_iterations):
        previous = ranks
        ranks = page_rank_step(graph, previous, damping)

        diff = sum(abs(ranks[node] - previous[node]) for node in graph)
        if diff < tolerance:
            logger.debug("PageRank converged after %d iterations", iteration + 1)
            break

    max_rank = max(ranks.values())
    if max_rank > 0:
        ranks = {node: value / max_rank for node, value in ranks.items()}
    return ranks


def calculate_eigenvector_centrality(
    graph: Graph,
    max_iterations: int = 50,
    tolerance: float = 1e-4,
) -> Dict[str, float]:
    """Power iteration on the adjacency relation, L2-normalized each round."""
    if not graph:
        return {}

    node_count = len(graph)
    centrality = {node: 1.0 / node_count for node in graph}

    for iteration in range(max_iterations):
        next_centrality = {node: 0.0 for node in graph}
        for node, edges in graph.items():
            for neighbor in edges:
                next_centrality[neighbor] = next_centrality.get(neighbor, 0.0) + centrality[node]

        norm = math.sqrt(sum(value * value for value in next_centrality.values()))
        if norm < EIGENVECTOR_NORM_FLOOR:
            logger.debug("Eigenvector iteration stopped on a degenerate graph")
            break

        next_centrality = {node: value / norm for node, value in next_centrality.items()}
        diff = sum(abs(next_centrality[node] - centrality[node]) for node in graph)
        centrality = next_centrality

        if diff < tolerance:
            logger.debug("Eigenvector centrality converged after %d iterations", iteration + 1)
            break

    return centrality


def calculate_bridging_coefficient(graph: Graph) -> Dict[str, float]:
    """neighbours * (1 - local clustering), rescaled so the highest value is 1."""
    incoming = build_incoming_index(graph)
    bridging: Dict[str, float] = {}

    for node in graph:
        neighbors = get_neighbors(graph, node, incoming)
        if len(neighbors) <= 1:
            bridging[node] = 0.0
            continue

        possible = len(neighbors) * (len(neighbors) - 1) / 2
        clustering = _count_connected_pairs(graph, neighbors) / possible
        bridging[node] = len(neighbors) * (1 - clustering)

    max_value = max(bridging.values(), default=0.0)
    if max_value > 0:
        bridging = {node: value / max_value for node, value in bridging.items()}
    return bridging


# ============================================================================
# Path-scoped metrics
# ============================================================================

def get_sample_pairs(
    nodes: Sequence[str], count: int, rng: Optional[random.Random] = None
) -> List[Tuple[str, str]]:
    """Node pairs for betweenness sampling.

    Small graphs enumerate pairs in order; larger ones draw random ordered
    pairs of distinct nodes.
    """
    rng = rng or random.Random()
    length = len(nodes)
    pairs: List[Tuple[str, str]] = []

    if length < EXHAUSTIVE_PAIRS_BELOW:
        for i in range(length):
            for j in range(i + 1, length):
                pairs.append((nodes[i], nodes[j]))
                if len(pairs) >= count:
                    return pairs
        return pairs

    limit = min(count, length * (length - 1) // 2)
    for _ in range(limit):
        first = rng.randrange(length)
        second = rng.randrange(length)
        while second == first:
            second = rng.randrange(length)
        pairs.append((nodes[first], nodes[second]))
    return pairs


async def calculate_betweenness_centrality(
    graph: Graph,
    path: Sequence[str],
    finder: PathFinder,
    rng: Optional[random.Random] = None,
    cancel_token: Optional[CancellationToken] = None,
    progress: Optional[ProgressCallback] = None,
) -> Dict[str, float]:
    """Sampled betweenness of the interior nodes of ``path``, on a 0-10 scale.

    Every node of ``path`` appears in the result. When cancelled, the counts
    gathered so far are returned unnormalized.
    """
    result: Dict[str, float] = {node: 0 for node in path}
    if len(path) <= 2:
        return result

    interior = list(path[1:-1])
    sample_size = min(BETWEENNESS_MAX_SAMPLES, max(BETWEENNESS_MIN_SAMPLES, len(path) * 3))
    pairs = get_sample_pairs(list(graph), sample_size, rng or finder.rng)

    for i in range(0, len(pairs), BETWEENNESS_BATCH_SIZE):
        if is_cancelled(cancel_token):
            logger.info("Betweenness sampling cancelled after %d of %d pairs", i, len(pairs))
            return result

        for source, target in pairs[i:i + BETWEENNESS_BATCH_SIZE]:
            if source == target:
                continue
            shortest = finder.find_shortest_path(graph, source, target)
            if shortest.distance <= 0:
                continue
            on_path = set(shortest.path)
            for node in interior:
                if node in on_path:
                    result[node] += 1

        if progress:
            progress(
                f"Calculating centrality: {round(i / len(pairs) * 100)}%...",
                round(i / len(pairs) * 100),
            )
        await asyncio.sleep(0)

    max_value = max(result.values())
    if max_value > 0:
        result = {node: round(value / max_value * 10) for node, value in result.items()}
    return result


def clustering_for_node(
    graph: Graph, node: str, incoming: Optional[Dict[str, List[str]]] = None
) -> float:
    """Fraction of connected neighbour pairs, estimated from at most 15 neighbours."""
    neighbors = get_neighbors(graph, node, incoming)
    if len(neighbors) < 2:
        return 0.0

    possible = len(neighbors) * (len(neighbors) - 1) / 2
    sampled = neighbors[:MAX_NEIGHBORS_TO_CHECK]
    connections = _count_connected_pairs(graph, sampled)

    if len(neighbors) > MAX_NEIGHBORS_TO_CHECK:
        ratio = len(sampled) / len(neighbors)
        connections = round(connections / (ratio * ratio))

    return connections / possible


async def calculate_clustering_coefficient(
    graph: Graph,
    path: Sequence[str],
    cancel_token: Optional[CancellationToken] = None,
    progress: Optional[ProgressCallback] = None,
) -> Dict[str, float]:
    """Clustering coefficient of every node on ``path`` (not normalized).

    When cancelled, only the nodes processed so far are present.
    """
    result: Dict[str, float] = {}
    if not path:
        return result

    incoming = build_incoming_index(graph)

    for i in range(0, len(path), CLUSTERING_BATCH_SIZE):
        if is_cancelled(cancel_token):
            logger.info("Clustering analysis cancelled after %d of %d nodes", i, len(path))
            return result

        for node in path[i:i + CLUSTERING_BATCH_SIZE]:
            result[node] = clustering_for_node(graph, node, incoming)

        if progress:
            progress(
                f"Analyzing density: {round(i / len(path) * 100)}%...",
                round(i / len(path) * 100),
            )
        await asyncio.sleep(0)

    return result


__all__ = [
    "build_incoming_index",
    "get_neighbors",
    "has_connection",
    "calculate_degree_centrality",
    "page_rank_step",
    "calculate_page_rank",
    "calculate_eigenvector_centrality",
    "calculate_bridging_coefficient",
    "get_sample_pairs",
    "calculate_betweenness_centrality",
    "clustering_for_node",
    "calculate_clustering_coefficient",
]
