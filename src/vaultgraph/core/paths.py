"""Shortest and alternative path search with connection-type provenance.

Two shortest-path strategies share one contract:
- simple: single-source BFS whose queue entries carry their own path
- bidirectional: level-synchronous BFS from both ends for large graphs

Alternative paths come from a randomized DFS over a copy of the graph with
part of the shortest path removed. Neighbour order is drawn from the injected
``random.Random``, so results are only reproducible with a seeded instance.
"""

from __future__ import annotations

from collections import deque
import logging
import random
from typing import Deque, Dict, List, Optional, Set, Tuple

from ..config import GraphSettings, TraversalStrategy
from .models import ConnectionInfo, Graph, PathResult

logger = logging.getLogger(__name__)

# node -> (predecessor, distance from the frontier root, edge payload)
Frontier = Dict[str, Tuple[Optional[str], int, Optional[ConnectionInfo]]]


def build_reverse_index(graph: Graph) -> Dict[str, Dict[str, ConnectionInfo]]:
    """target -> (source -> payload of the source -> target edge)."""
    reverse: Dict[str, Dict[str, ConnectionInfo]] = {}
    for source, targets in graph.items():
        for target, info in targets.items():
            reverse.setdefault(target, {})[source] = info
    return reverse


class PathFinder:
    """Path queries over a Graph, honouring the configured length ceiling."""

    def __init__(self, settings: GraphSettings, rng: Optional[random.Random] = None) -> None:
        self.settings = settings
        self.rng = rng or random.Random()

    @property
    def max_path_length(self) -> int:
        return self.settings.max_path_length

    def use_simple_strategy(self, graph: Graph) -> bool:
        strategy = self.settings.traversal_strategy
        if strategy == TraversalStrategy.SIMPLE:
            return True
        if strategy == TraversalStrategy.BIDIRECTIONAL:
            return False
        return len(graph) < self.settings.bidirectional_threshold

    def find_shortest_path(self, graph: Graph, start: str, end: str) -> PathResult:
        if start == end:
            return PathResult(distance=0, path=[start], connection_types=[])

        if start not in graph or end not in graph:
            return PathResult.not_found()

        if self.use_simple_strategy(graph):
            return self._bfs(graph, start, end)
        return self._bidirectional_bfs(graph, start, end)

    # ------------------------------------------------------------------
    # Single-source BFS
    # ------------------------------------------------------------------

    def _bfs(self, graph: Graph, start: str, end: str) -> PathResult:
        queue: Deque[Tuple[str, int, List[str], List[ConnectionInfo]]] = deque(
            [(start, 0, [start], [])]
        )
        visited: Set[str] = {start}

        while queue:
            node, distance, path, connection_types = queue.popleft()

            if node == end:
                return PathResult(distance=distance, path=path, connection_types=connection_types)

            if distance >= self.max_path_length:
                continue

            for neighbor, info in graph.get(node, {}).items():
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append((
                        neighbor,
                        distance + 1,
                        path + [neighbor],
                        connection_types + [info],
                    ))

        return PathResult.not_found()

    # ------------------------------------------------------------------
    # Bidirectional BFS
    # ------------------------------------------------------------------

    def _bidirectional_bfs(self, graph: Graph, start: str, end: str) -> PathResult:
        reverse = build_reverse_index(graph)

        forward: Frontier = {start: (None, 0, None)}
        backward: Frontier = {end: (None, 0, None)}
        forward_queue: Deque[str] = deque([start])
        backward_queue: Deque[str] = deque([end])

        meeting_node: Optional[str] = None
        best = float("inf")

        while forward_queue and backward_queue:
            if len(forward_queue) <= len(backward_queue):
                meeting, total = self._expand_level(
                    forward_queue, forward, backward, best,
                    lambda node: graph.get(node, {}).items(),
                )
            else:
                meeting, total = self._expand_level(
                    backward_queue, backward, forward, best,
                    lambda node: ((source, info.reversed())
                                  for source, info in reverse.get(node, {}).items()),
                )

            if meeting is not None:
                meeting_node, best = meeting, total

            if meeting_node is not None:
                next_forward = forward[forward_queue[0]][1] if forward_queue else float("inf")
                next_backward = backward[backward_queue[0]][1] if backward_queue else float("inf")
                if best <= min(next_forward, next_backward):
                    break

        if meeting_node is None or best > self.max_path_length:
            return PathResult.not_found()

        return self._join_frontiers(forward, backward, meeting_node, start, end)

    def _expand_level(self, queue, visited: Frontier, other: Frontier, best, neighbors):
        """Expand every node currently queued; return the best new meeting, if any."""
        meeting_node: Optional[str] = None
        for _ in range(len(queue)):
            node = queue.popleft()
            distance = visited[node][1]

            if distance >= self.max_path_length or distance >= best:
                continue

            for neighbor, info in neighbors(node):
                if neighbor in visited:
                    continue
                visited[neighbor] = (node, distance + 1, info)
                queue.append(neighbor)

                if neighbor in other:
                    total = distance + 1 + other[neighbor][1]
                    if total < best:
                        best = total
                        meeting_node = neighbor

        return meeting_node, best

    def _join_frontiers(
        self, forward: Frontier, backward: Frontier, meeting: str, start: str, end: str
    ) -> PathResult:
        forward_path: List[str] = []
        forward_types: List[ConnectionInfo] = []
        current: Optional[str] = meeting
        while current is not None and current != start:
            prev, _, info = forward[current]
            forward_path.append(current)
            if info is not None:
                forward_types.append(info)
            current = prev
        forward_path.append(start)
        forward_path.reverse()
        forward_types.reverse()

        backward_path: List[str] = []
        backward_types: List[ConnectionInfo] = []
        current = meeting
        while current is not None and current != end:
            prev, _, info = backward[current]
            if info is not None:
                # backward payloads were flipped during expansion
                backward_types.append(info.reversed())
            if prev is not None:
                backward_path.append(prev)
            current = prev

        path = forward_path + backward_path
        return PathResult(
            distance=len(path) - 1,
            path=path,
            connection_types=forward_types + backward_types,
        )

    # ------------------------------------------------------------------
    # Alternative paths
    # ------------------------------------------------------------------

    def find_all_paths(
        self, graph: Graph, start: str, end: str, max_paths: Optional[int] = None
    ) -> List[PathResult]:
        """Shortest path first, then up to ``max_paths`` distinct alternatives.

        Ordered by path length. Alternative discovery is randomized.
        """
        if max_paths is None:
            max_paths = self.settings.max_paths_to_show
        if max_paths < 1:
            return []

        shortest = self.find_shortest_path(graph, start, end)
        if not shortest.found:
            return []

        paths: List[PathResult] = [shortest]
        if max_paths <= 1:
            return paths

        modified = self.create_alt_path_graph(graph, shortest.path)
        self._find_alternative_paths(
            modified, start, end, [start], [], {start}, paths, max_paths,
        )

        logger.debug("Found %d paths between %s and %s", len(paths), start, end)
        return sorted(paths, key=lambda result: len(result.path))

    def create_alt_path_graph(self, graph: Graph, shortest_path: List[str]) -> Graph:
        """Copy of ``graph`` without every second interior edge of the shortest path.

        The final hop is always kept.
        """
        modified: Graph = {node: dict(edges) for node, edges in graph.items()}

        if len(shortest_path) > 3:
            for i in range(1, len(shortest_path) - 2, 2):
                node, next_node = shortest_path[i], shortest_path[i + 1]
                modified.get(node, {}).pop(next_node, None)

        return modified

    def _find_alternative_paths(
        self,
        graph: Graph,
        current: str,
        end: str,
        current_path: List[str],
        current_types: List[ConnectionInfo],
        visited: Set[str],
        paths: List[PathResult],
        max_paths: int,
    ) -> None:
        if len(paths) >= max_paths or len(current_path) > self.max_path_length:
            return

        if current == end:
            if not self.is_duplicate_path(paths, current_path):
                paths.append(PathResult(
                    distance=len(current_path) - 1,
                    path=list(current_path),
                    connection_types=list(current_types),
                ))
            return

        visited.add(current)

        neighbors = list(graph.get(current, {}).items())
        self.rng.shuffle(neighbors)

        for neighbor, info in neighbors:
            if neighbor in visited:
                continue
            current_path.append(neighbor)
            current_types.append(info)

            self._find_alternative_paths(
                graph, neighbor, end, current_path, current_types, visited, paths, max_paths,
            )

            current_path.pop()
            current_types.pop()

        visited.discard(current)

    @staticmethod
    def is_duplicate_path(paths: List[PathResult], new_path: List[str]) -> bool:
        return any(existing.path == new_path for existing in paths)


__all__ = ["PathFinder", "build_reverse_index"]
