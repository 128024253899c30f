"""Data model of the station network and of isochrone results."""
from dataclasses import dataclass, field
from typing import Dict, Tuple

from shapely.geometry.base import BaseGeometry


@dataclass(frozen=True)
class Coordinate:
    """WGS84 point supplied by the caller (geocoder, map click)."""

    lat: float
    lon: float


@dataclass(frozen=True)
class Station:
    """Parent station. ``id`` is the GTFS stop_id of the parent stop."""

    id: str
    name: str
    lat: float
    lon: float
    accessible: bool = False
    routes_served: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "lat": self.lat,
            "lon": self.lon,
            "accessible": self.accessible,
            "routesServed": list(self.routes_served),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Station":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            lat=float(data["lat"]),
            lon=float(data["lon"]),
            accessible=bool(data.get("accessible", False)),
            routes_served=tuple(data.get("routesServed", ())),
        )


@dataclass(frozen=True)
class Edge:
    """Directed station-to-station hop on one route, weighted by median travel time."""

    from_id: str
    to_id: str
    travel_time_sec: int
    route_id: str

    def to_dict(self) -> dict:
        return {
            "fromId": self.from_id,
            "toId": self.to_id,
            "travelTimeSec": self.travel_time_sec,
            "routeId": self.route_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Edge":
        return cls(
            from_id=str(data["fromId"]),
            to_id=str(data["toId"]),
            travel_time_sec=int(data["travelTimeSec"]),
            route_id=str(data["routeId"]),
        )


@dataclass(frozen=True)
class Network:
    """Persisted output of the builder, a read-only snapshot."""

    stations: Tuple[Station, ...] = ()
    edges: Tuple[Edge, ...] = ()

    def station_map(self) -> Dict[str, Station]:
        return {station.id: station for station in self.stations}

    def to_dict(self) -> dict:
        return {
            "stations": [station.to_dict() for station in self.stations],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Network":
        return cls(
            stations=tuple(Station.from_dict(item) for item in data["stations"]),
            edges=tuple(Edge.from_dict(item) for item in data["edges"]),
        )


@dataclass(frozen=True)
class StartStation:
    """Station reached on foot from the origin."""

    station_id: str
    walking_time_sec: int


@dataclass(frozen=True)
class NearbyStation:
    station: Station
    distance_m: float
    walking_time_sec: int


@dataclass(frozen=True)
class ReachableStation:
    """Station reachable within the budget, with total walk + transit time."""

    station_id: str
    travel_time_sec: int


@dataclass(frozen=True)
class Isochrone:
    """
    Reachable area for one (origin, budget) query.

    ``polygon`` is a shapely Polygon or MultiPolygon in EPSG:4326.
    """

    polygon: BaseGeometry
    reachable_stations: Tuple[ReachableStation, ...] = field(default_factory=tuple)
    total_stations: int = 0
