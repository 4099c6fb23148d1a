"""Tests for centrality and structural metrics."""

import math
import random

import pytest

from vaultgraph.core.centrality import (
    MAX_NEIGHBORS_TO_CHECK,
    build_incoming_index,
    calculate_betweenness_centrality,
    calculate_bridging_coefficient,
    calculate_clustering_coefficient,
    calculate_degree_centrality,
    calculate_eigenvector_centrality,
    calculate_page_rank,
    clustering_for_node,
    get_neighbors,
    get_sample_pairs,
    has_connection,
    page_rank_step,
)
from vaultgraph.core.models import CancellationToken
from vaultgraph.core.paths import PathFinder


def mutual(graph_from, pairs):
    edges = {}
    for a, b in pairs:
        edges.setdefault(a, {})[b] = "direct"
        edges.setdefault(b, {})[a] = "backlink"
    return graph_from(edges)


@pytest.fixture
def triangle(graph_from):
    return mutual(graph_from, [("a", "b"), ("b", "c"), ("c", "a")])


@pytest.fixture
def star(graph_from):
    return mutual(graph_from, [("hub", "x"), ("hub", "y"), ("hub", "z")])


@pytest.fixture
def chain(graph_from):
    return mutual(graph_from, [("a", "b"), ("b", "c"), ("c", "d")])


def test_degree_centrality(graph_from) -> None:
    graph = graph_from({"a": {"b": "direct", "c": "tag"}, "b": {"c": "direct"}})

    in_degree, out_degree, total = calculate_degree_centrality(graph)

    assert in_degree == {"a": 0, "b": 1, "c": 2}
    assert out_degree == {"a": 2, "b": 1, "c": 0}
    assert total == {"a": 2, "b": 2, "c": 2}


def test_get_neighbors_is_undirected_and_excludes_self(graph_from) -> None:
    graph = graph_from({"a": {"b": "direct", "a": "direct"}, "b": {"a": "backlink"}, "c": {"a": "tag"}})

    assert get_neighbors(graph, "a") == ["b", "c"]
    assert get_neighbors(graph, "c", build_incoming_index(graph)) == ["a"]


def test_has_connection_either_direction(graph_from) -> None:
    graph = graph_from({"a": {"b": "direct"}, "c": {}})

    assert has_connection(graph, "a", "b")
    assert has_connection(graph, "b", "a")
    assert not has_connection(graph, "a", "c")


def test_page_rank_max_is_one(star) -> None:
    ranks = calculate_page_rank(star)

    assert set(ranks) == set(star)
    assert max(ranks.values()) == pytest.approx(1.0)
    assert ranks["hub"] == pytest.approx(1.0)
    assert all(0 < value <= 1.0 for value in ranks.values())


def test_page_rank_step_conserves_mass(graph_from) -> None:
    # "d" is dangling
    graph = graph_from({"a": {"b": "direct", "c": "direct"}, "b": {"c": "direct"}, "c": {"a": "tag", "d": "direct"}})
    previous = {node: 1.0 / len(graph) for node in graph}

    for _ in range(5):
        ranks = page_rank_step(graph, previous)
        assert sum(ranks.values()) == pytest.approx(1.0)
        previous = ranks


def test_page_rank_empty_graph() -> None:
    assert calculate_page_rank({}) == {}


def test_page_rank_without_edges_is_uniform(graph_from) -> None:
    ranks = calculate_page_rank(graph_from({"a": {}, "b": {}, "c": {}}))

    assert ranks == pytest.approx({"a": 1.0, "b": 1.0, "c": 1.0})


def test_eigenvector_unit_norm(graph_from) -> None:
    graph = mutual(graph_from, [("a", "b"), ("b", "c"), ("c", "a"), ("c", "d")])

    centrality = calculate_eigenvector_centrality(graph)

    norm = math.sqrt(sum(value * value for value in centrality.values()))
    assert norm == pytest.approx(1.0)
    assert centrality["c"] == max(centrality.values())


def test_eigenvector_degenerate_graph(graph_from) -> None:
    centrality = calculate_eigenvector_centrality(graph_from({"a": {}, "b": {}}))

    assert centrality == {"a": 0.5, "b": 0.5}


def test_eigenvector_empty_graph() -> None:
    assert calculate_eigenvector_centrality({}) == {}


def test_bridging_triangle_is_zero(triangle) -> None:
    assert calculate_bridging_coefficient(triangle) == {"a": 0.0, "b": 0.0, "c": 0.0}


def test_bridging_star(star) -> None:
    bridging = calculate_bridging_coefficient(star)

    assert bridging["hub"] == pytest.approx(1.0)
    assert bridging["x"] == bridging["y"] == bridging["z"] == 0.0


def test_clustering_for_node(triangle, star) -> None:
    assert clustering_for_node(triangle, "a") == pytest.approx(1.0)
    assert clustering_for_node(star, "hub") == 0.0
    assert clustering_for_node(star, "x") == 0.0


def test_clustering_samples_large_neighbourhoods(graph_from) -> None:
    leaves = [f"leaf{i}" for i in range(MAX_NEIGHBORS_TO_CHECK + 5)]
    graph = mutual(graph_from, [("hub", leaf) for leaf in leaves])
    for leaf, other in zip(leaves, leaves[1:]):
        graph[leaf][other] = graph["hub"][leaf]

    value = clustering_for_node(graph, "hub")

    assert 0.0 < value <= 1.0


def test_sample_pairs_small_graph_is_exhaustive() -> None:
    pairs = get_sample_pairs(["a", "b", "c", "d"], 15)

    assert pairs == [("a", "b"), ("a", "c"), ("a", "d"), ("b", "c"), ("b", "d"), ("c", "d")]


def test_sample_pairs_large_graph_is_random_but_seeded() -> None:
    nodes = [f"n{i}" for i in range(12)]

    first = get_sample_pairs(nodes, 15, random.Random(3))
    second = get_sample_pairs(nodes, 15, random.Random(3))

    assert first == second
    assert len(first) == 15
    assert all(a != b for a, b in first)


@pytest.mark.asyncio
async def test_betweenness_on_chain(chain, settings) -> None:
    finder = PathFinder(settings, random.Random(0))

    result = await calculate_betweenness_centrality(chain, ["a", "b", "c", "d"], finder)

    assert result == {"a": 0, "b": 10, "c": 10, "d": 0}


@pytest.mark.asyncio
async def test_betweenness_short_path(chain, settings) -> None:
    finder = PathFinder(settings)

    assert await calculate_betweenness_centrality(chain, ["a", "b"], finder) == {"a": 0, "b": 0}
    assert await calculate_betweenness_centrality(chain, [], finder) == {}


@pytest.mark.asyncio
async def test_betweenness_cancelled(chain, settings) -> None:
    token = CancellationToken()
    token.cancel()

    result = await calculate_betweenness_centrality(
        chain, ["a", "b", "c", "d"], PathFinder(settings), cancel_token=token
    )

    assert result == {"a": 0, "b": 0, "c": 0, "d": 0}


@pytest.mark.asyncio
async def test_betweenness_bounds(graph_from, settings) -> None:
    rng = random.Random(5)
    nodes = [f"n{i}" for i in range(20)]
    graph = mutual(graph_from, [(nodes[i], nodes[i + 1]) for i in range(19)]
                   + [(rng.choice(nodes), rng.choice(nodes)) for _ in range(10)])
    for node in graph:
        graph[node].pop(node, None)
    path = PathFinder(settings).find_shortest_path(graph, "n0", "n19").path

    result = await calculate_betweenness_centrality(
        graph, path, PathFinder(settings, random.Random(8))
    )

    assert set(result) == set(path)
    assert all(0 <= value <= 10 for value in result.values())


@pytest.mark.asyncio
async def test_clustering_coefficient_for_path(triangle) -> None:
    updates = []

    result = await calculate_clustering_coefficient(
        triangle, ["a", "b", "c"], progress=lambda message, percent: updates.append(percent)
    )

    assert result == pytest.approx({"a": 1.0, "b": 1.0, "c": 1.0})
    assert updates == [0]


@pytest.mark.asyncio
async def test_clustering_coefficient_cancelled(triangle) -> None:
    token = CancellationToken()
    token.cancel()

    assert await calculate_clustering_coefficient(triangle, ["a", "b"], cancel_token=token) == {}
