"""Tools for building isochrone polygons from reachable stations."""

import multiprocessing
import time
from functools import partial
from typing import Dict, Iterable, Optional, Sequence

import geopandas as gpd
import networkx as nx
import shapely
from shapely.errors import GEOSException
from shapely.geometry.base import BaseGeometry

from .config import (
    CRS_WGS84,
    DEFAULT_MAX_TRAVEL_TIME_SEC,
    DEFAULT_WALK_DISTANCE_M,
    WALKING_SPEED_MPS,
)
from .connectors import find_nearest_stations, to_start_stations
from .functions import determine_utm_zone
from .models import Coordinate, Isochrone, Network, ReachableStation, Station
from .other import logger
from .routers import build_graph, find_reachable_stations


def generate_station_buffers(stations: Sequence[Station], radius: float) -> gpd.GeoSeries:
    """
    Circular walksheds around stations.

    Parameters
    ----------
    stations : sequence of Station
        Stations to buffer.
    radius : float
        Buffer radius in meters.

    Returns
    -------
    geopandas.GeoSeries
        One polygon per station, in the UTM zone of the stations
        (see :func:`nxisochrone.functions.determine_utm_zone`).
    """
    points = gpd.GeoSeries(
        gpd.points_from_xy(
            [station.lon for station in stations],
            [station.lat for station in stations],
        ),
        crs=CRS_WGS84,
    )
    utm_crs = determine_utm_zone(points)
    # Re-projection to UTM for buffering in meters
    return points.to_crs(utm_crs).buffer(radius)


def union_buffers(buffers: Sequence[BaseGeometry]) -> Optional[BaseGeometry]:
    """
    Unions walkshed polygons into a single geometry.

    Returns None for an empty input or when the union fails or is empty.
    A single non-empty buffer is returned unchanged.
    """
    buffers = list(buffers)
    if not buffers:
        return None

    if len(buffers) == 1:
        unioned = buffers[0]
    else:
        try:
            unioned = shapely.union_all(buffers)
        except GEOSException as e:
            logger.warning(f"Union of {len(buffers)} walksheds failed: {e}")
            return None

    if unioned is None or unioned.is_empty:
        return None
    return unioned


def _walkshed_polygon(stations: Sequence[Station], radius: float) -> Optional[BaseGeometry]:
    buffers = generate_station_buffers(stations, radius)
    unioned = union_buffers(list(buffers))
    if unioned is None:
        return None
    return gpd.GeoSeries([unioned], crs=buffers.crs).to_crs(CRS_WGS84).iloc[0]


def create_isochrone(
    network: Network,
    origin: Coordinate,
    max_travel_time_sec: float = DEFAULT_MAX_TRAVEL_TIME_SEC,
    walk_distance: float = DEFAULT_WALK_DISTANCE_M,
    max_walk_distance: Optional[float] = None,
    graph: Optional[nx.MultiDiGraph] = None,
    walking_speed: float = WALKING_SPEED_MPS,
    strategy: str = "seeded",
) -> Optional[Isochrone]:
    """
    Creates the area reachable from an origin by walking and riding transit.

    Parameters
    ----------
    network : Network
        Station network.
    origin : Coordinate
        Origin point in EPSG:4326.
    max_travel_time_sec : float, optional
        Total travel time budget (default: 30 minutes).
    walk_distance : float, optional
        Radius in meters of the walkshed drawn around every reachable station
        (default: half a mile).
    max_walk_distance : float, optional
        Maximum walking distance in meters from the origin to a boarding
        station. Defaults to ``walk_distance``.
    graph : networkx.MultiDiGraph, optional
        Prebuilt graph of ``network``; built on the fly when omitted.
    walking_speed : float, optional
        Walking speed in meters per second (default: 3 mph).
    strategy : str, optional
        Search strategy passed to :func:`nxisochrone.routers.find_reachable_stations`.

    Returns
    -------
    Isochrone or None
        None when no station is within walking range, when walking alone
        exhausts the budget, or when no polygon can be formed.

    Notes
    -----
    The polygon is the union of circular buffers around every reachable
    station, built in the local UTM zone and returned in EPSG:4326.

    See Also
    --------
    nxisochrone.engine.IsochroneEngine : Cached query interface.
    """
    if max_walk_distance is None:
        max_walk_distance = walk_distance

    nearby = find_nearest_stations(
        origin, network.stations, max_walk_distance, walking_speed=walking_speed
    )
    if not nearby:
        logger.info(f"No stations within {max_walk_distance:.0f} m of {origin.lat}, {origin.lon}")
        return None

    start_stations = to_start_stations(nearby, max_travel_time_sec)
    if not start_stations:
        logger.info("Walking to the nearest station already exceeds the time budget")
        return None

    if graph is None:
        graph = build_graph(network)

    travel_times = find_reachable_stations(
        graph, start_stations, max_travel_time_sec, strategy=strategy
    )

    station_map = network.station_map()
    reachable_stations = sorted(
        (
            ReachableStation(station_id=station_id, travel_time_sec=int(travel_time))
            for station_id, travel_time in travel_times.items()
            if station_id in station_map
        ),
        key=lambda item: (item.travel_time_sec, item.station_id),
    )
    if not reachable_stations:
        return None

    polygon = _walkshed_polygon(
        [station_map[item.station_id] for item in reachable_stations], walk_distance
    )
    if polygon is None:
        return None

    logger.debug(
        f"Isochrone for {max_travel_time_sec} s: {len(reachable_stations)} stations reachable"
    )
    return Isochrone(
        polygon=polygon,
        reachable_stations=tuple(reachable_stations),
        total_stations=len(reachable_stations),
    )


def _isochrone_worker(max_travel_time_sec, **kwargs):
    """
    Internal worker function to create the isochrone of a single budget.
    """
    return create_isochrone(max_travel_time_sec=max_travel_time_sec, **kwargs)


def isochrones_for_budgets(
    network: Network,
    origin: Coordinate,
    budgets: Iterable[float],
    walk_distance: float = DEFAULT_WALK_DISTANCE_M,
    max_walk_distance: Optional[float] = None,
    graph: Optional[nx.MultiDiGraph] = None,
    walking_speed: float = WALKING_SPEED_MPS,
    strategy: str = "seeded",
    num_processes: int = 1,
) -> Dict[float, Optional[Isochrone]]:
    """
    Creates one isochrone per time budget, e.g. 15/30/45/60 minutes.

    Each budget is computed independently from the shared read-only graph,
    so budgets can be spread over several processes.

    Parameters
    ----------
    network : Network
        Station network.
    origin : Coordinate
        Origin point in EPSG:4326.
    budgets : iterable of float
        Travel time budgets in seconds. Duplicates are computed once.
    num_processes : int, optional
        Number of worker processes. 1 (default) computes sequentially.

    Other parameters are passed to :func:`create_isochrone`.

    Returns
    -------
    dict
        Budget -> Isochrone or None, in the order of ``budgets``.
    """
    budgets = list(dict.fromkeys(budgets))
    if graph is None:
        graph = build_graph(network)

    worker = partial(
        _isochrone_worker,
        network=network,
        origin=origin,
        walk_distance=walk_distance,
        max_walk_distance=max_walk_distance,
        graph=graph,
        walking_speed=walking_speed,
        strategy=strategy,
    )

    time_start = time.perf_counter()
    if num_processes > 1 and len(budgets) > 1:
        processes = min(num_processes, len(budgets))
        logger.info(f"Calculating {len(budgets)} isochrones using {processes} processes")
        with multiprocessing.Pool(processes=processes) as pool:
            results = pool.map(worker, budgets)
    else:
        results = [worker(budget) for budget in budgets]
    logger.debug(f"Time elapsed: {time.perf_counter() - time_start:.2f} s")

    return dict(zip(budgets, results))


def isochrone_to_gdf(isochrone: Isochrone, **columns) -> gpd.GeoDataFrame:
    """
    Wraps an isochrone into a one-row GeoDataFrame in EPSG:4326.

    Extra keyword arguments become additional columns, e.g. the budget.
    """
    data = {"total_stations": [isochrone.total_stations]}
    data.update({name: [value] for name, value in columns.items()})
    return gpd.GeoDataFrame(data, geometry=[isochrone.polygon], crs=CRS_WGS84)
