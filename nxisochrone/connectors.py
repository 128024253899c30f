"""Tools for connecting an origin point to the stations within walking distance."""
from typing import List, Sequence

import numpy as np
from pyproj import Geod

from .config import DEFAULT_WALK_DISTANCE_M, WALKING_SPEED_MPS
from .converters import walking_time_seconds
from .models import Coordinate, NearbyStation, StartStation, Station

_GEOD = Geod(ellps="WGS84")


def geodesic_distances(origin: Coordinate, stations: Sequence[Station]) -> np.ndarray:
    """
    Distance in meters on the WGS84 ellipsoid from the origin to every station.
    """
    if not stations:
        return np.empty(0)
    lons = np.array([station.lon for station in stations], dtype=float)
    lats = np.array([station.lat for station in stations], dtype=float)
    _, _, distances = _GEOD.inv(
        np.full_like(lons, origin.lon), np.full_like(lats, origin.lat), lons, lats
    )
    return np.asarray(distances)


def find_nearest_stations(
    origin: Coordinate,
    stations: Sequence[Station],
    max_walk_distance: float = DEFAULT_WALK_DISTANCE_M,
    walking_speed: float = WALKING_SPEED_MPS,
) -> List[NearbyStation]:
    """
    Stations within walking distance of the origin, closest first.

    Parameters
    ----------
    origin : Coordinate
        Origin point in EPSG:4326.
    stations : sequence of Station
        Stations to consider.
    max_walk_distance : float, optional
        Maximum straight-line walking distance in meters.
    walking_speed : float, optional
        Walking speed in meters per second.

    Returns
    -------
    list of NearbyStation
        Stations with ``distance_m <= max_walk_distance``, sorted by distance.
        Ties keep the order of ``stations``.
    """
    stations = list(stations)
    distances = geodesic_distances(origin, stations)

    nearby = [
        NearbyStation(
            station=station,
            distance_m=float(distance),
            walking_time_sec=walking_time_seconds(float(distance), walking_speed),
        )
        for station, distance in zip(stations, distances)
        if distance <= max_walk_distance
    ]
    nearby.sort(key=lambda item: item.distance_m)
    return nearby


def to_start_stations(nearby: Sequence[NearbyStation], max_time_sec: float) -> List[StartStation]:
    """Start stations whose walking time still fits into the budget."""
    return [
        StartStation(station_id=item.station.id, walking_time_sec=item.walking_time_sec)
        for item in nearby
        if item.walking_time_sec <= max_time_sec
    ]
