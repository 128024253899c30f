"""Station graph index and budget-bounded shortest path search."""

from heapq import heappop, heappush
from typing import Dict, Iterable, List, Mapping

import networkx as nx

from .models import Edge, Network, StartStation
from .other import logger


def build_graph(network: Network) -> nx.MultiDiGraph:
    """
    Builds the adjacency index of the network.

    Every station becomes a node, including stations without outgoing edges.
    Parallel edges of different routes between the same pair of stations are
    kept apart, keyed by ``route_id``.

    Parameters
    ----------
    network : Network
        Stations and edges produced by the loaders.

    Returns
    -------
    networkx.MultiDiGraph
        Nodes carry ``name``, ``x`` (lon) and ``y`` (lat); edges carry
        ``travel_time_sec`` and ``route_id``.
    """
    graph = nx.MultiDiGraph()
    for station in network.stations:
        graph.add_node(station.id, name=station.name, x=station.lon, y=station.lat)

    skipped = 0
    for edge in network.edges:
        # Only stations own outgoing edges
        if edge.from_id not in graph:
            skipped += 1
            continue
        graph.add_edge(
            edge.from_id,
            edge.to_id,
            key=edge.route_id,
            travel_time_sec=edge.travel_time_sec,
            route_id=edge.route_id,
        )

    if skipped:
        logger.warning(f"{skipped} edges start at unknown stations and were skipped")

    return graph


def outgoing_edges(graph: nx.MultiDiGraph, station_id: str) -> List[Edge]:
    """
    Outgoing edges of a station in insertion order.

    Unknown and isolated stations both yield an empty list.
    """
    if station_id not in graph:
        return []
    return [
        Edge(
            from_id=station_id,
            to_id=to_id,
            travel_time_sec=data["travel_time_sec"],
            route_id=data["route_id"],
        )
        for _, to_id, data in graph.out_edges(station_id, data=True)
    ]


def _neighbors(graph: nx.MultiDiGraph, station_id: str):
    """Yields ``(neighbor, travel_time_sec)`` for every outgoing edge."""
    if station_id not in graph:
        return
    for neighbor, keyed_edges in graph.adj[station_id].items():
        for data in keyed_edges.values():
            yield neighbor, data["travel_time_sec"]


def multi_source_reachability(
    graph: nx.MultiDiGraph,
    sources: Mapping[str, float],
    cutoff: float,
) -> Dict[str, float]:
    """
    Minimum time to every station reachable within ``cutoff``.

    Each source is seeded into a single heap at its own offset (the time
    already spent before boarding there), so the result is the minimum over
    all sources.

    Parameters
    ----------
    graph : networkx.MultiDiGraph
        Graph built by :func:`build_graph`.
    sources : mapping
        Station id -> time already spent when the search starts there.
        Sources with an offset above ``cutoff`` are ignored.
    cutoff : float
        Time budget, in seconds, measured in the same frame as the offsets.

    Returns
    -------
    dict
        Station id -> minimum time, only entries ``<= cutoff``. Empty when
        nothing is reachable.

    Implementation
    --------------
    Dijkstra's algorithm over a binary heap with lazy deletion: improved
    entries are pushed again instead of decreased in place, and stale entries
    (popped with a time above the best recorded one) are skipped. Entries are
    only pushed when within budget, so every popped station is expanded.
    """
    dist = {}
    queue = []

    for station_id, offset in sources.items():
        if offset < 0 or offset > cutoff:
            continue
        if offset < dist.get(station_id, float("inf")):
            dist[station_id] = offset
            heappush(queue, (offset, station_id))

    while queue:
        current_time, current_id = heappop(queue)

        # Superseded by a better entry pushed later
        if current_time > dist[current_id]:
            continue

        for neighbor, travel_time in _neighbors(graph, current_id):
            candidate = current_time + travel_time
            if candidate > cutoff:
                continue
            if candidate < dist.get(neighbor, float("inf")):
                dist[neighbor] = candidate
                heappush(queue, (candidate, neighbor))

    return {station_id: time for station_id, time in dist.items() if time <= cutoff}


def single_source_reachability(
    graph: nx.MultiDiGraph,
    source: str,
    cutoff: float,
) -> Dict[str, float]:
    """
    Transit time from one station to every station reachable within ``cutoff``.

    Examples
    --------
    >>> network = Network(stations=..., edges=(Edge("A", "B", 60, "1"), Edge("B", "C", 120, "1")))
    >>> single_source_reachability(build_graph(network), "A", 200)
    {'A': 0, 'B': 60, 'C': 180}
    """
    return multi_source_reachability(graph, {source: 0}, cutoff)


def _merge_per_start(
    graph: nx.MultiDiGraph,
    start_stations: Iterable[StartStation],
    max_time_sec: float,
) -> Dict[str, float]:
    """Runs one search per start station and keeps the minimum total per station."""
    merged = {}
    for start in start_stations:
        remaining = max_time_sec - start.walking_time_sec
        if remaining < 0:
            continue
        reachable = single_source_reachability(graph, start.station_id, remaining)
        for station_id, transit_time in reachable.items():
            total = start.walking_time_sec + transit_time
            if total < merged.get(station_id, float("inf")):
                merged[station_id] = total
    return merged


def find_reachable_stations(
    graph: nx.MultiDiGraph,
    start_stations: Iterable[StartStation],
    max_time_sec: float,
    strategy: str = "seeded",
) -> Dict[str, float]:
    """
    Total walk + transit time to every station reachable from the start stations.

    Parameters
    ----------
    graph : networkx.MultiDiGraph
        Graph built by :func:`build_graph`.
    start_stations : iterable of StartStation
        Stations reached on foot, with the walking time already spent.
    max_time_sec : float
        Total travel time budget.
    strategy : str, optional
        ``"seeded"`` (default) seeds every start into one search at its
        walking offset. ``"per_start"`` searches from each start separately
        with its remaining budget and merges the minima. Both give the same
        result.

    Returns
    -------
    dict
        Station id -> minimum total time, every value ``<= max_time_sec``.
    """
    if strategy == "per_start":
        return _merge_per_start(graph, start_stations, max_time_sec)
    if strategy != "seeded":
        raise ValueError(f"Unknown strategy: {strategy!r}. Use 'seeded' or 'per_start'.")

    offsets = {}
    for start in start_stations:
        if start.walking_time_sec < offsets.get(start.station_id, float("inf")):
            offsets[start.station_id] = start.walking_time_sec
    return multi_source_reachability(graph, offsets, max_time_sec)
