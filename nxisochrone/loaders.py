"""Load a GTFS feed into a station network, persist it and export it as GeoDataFrames."""
import json
import logging
import os
import warnings
from typing import Dict, NamedTuple, Optional, Tuple

import geopandas as gpd
import pandas as pd
from shapely.geometry import LineString

from .config import (
    CRS_WGS84,
    MAX_EDGE_TRAVEL_TIME_SEC,
    OPTIONAL_FEED_COLUMNS,
    REQUIRED_FEED_COLUMNS,
    SECONDS_PER_DAY,
)
from .converters import parse_time_to_seconds
from .errors import (
    DataQualityWarning,
    FeedFormatError,
    FeedReadError,
    NetworkLoadError,
)
from .functions import aggregate_travel_times, read_header, validate_feed
from .models import Edge, Network, Station
from .other import logger


class FeedTables(NamedTuple):
    """Raw GTFS tables, every value kept as a stripped string."""

    stops: pd.DataFrame
    stop_times: pd.DataFrame
    trips: pd.DataFrame
    routes: pd.DataFrame


def _read_table(gtfs_path: str, filename: str) -> pd.DataFrame:
    """
    Reads one GTFS table, keeping only the required and known optional columns.

    Raises
    ------
    FeedReadError
        If the file is missing or cannot be decoded.
    FeedFormatError
        If a required column header is absent.
    """
    required = REQUIRED_FEED_COLUMNS[filename]
    optional = OPTIONAL_FEED_COLUMNS.get(filename, [])
    file_path = os.path.join(gtfs_path, filename)

    if not os.path.isfile(file_path):
        raise FeedReadError(file_path)

    try:
        header = read_header(file_path)
    except pd.errors.EmptyDataError:
        # No header line at all
        raise FeedFormatError(filename, required) from None
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise FeedReadError(file_path, str(e)) from e

    missing = [column for column in required if column not in header]
    if missing:
        raise FeedFormatError(filename, missing)

    wanted = set(required) | {column for column in optional if column in header}
    try:
        table = pd.read_csv(
            file_path,
            usecols=lambda column: column.strip() in wanted,
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
        )
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise FeedReadError(file_path, str(e)) from e

    table = table.rename(columns=lambda column: column.strip())
    for column in table.columns:
        table[column] = table[column].str.strip()
    return table


def read_feed(gtfs_path: str) -> FeedTables:
    """
    Reads the four GTFS tables needed to build the station network.

    Parameters
    ----------
    gtfs_path : str
        Directory containing stops.txt, stop_times.txt, trips.txt and routes.txt.

    Returns
    -------
    FeedTables
        The parsed tables.

    Raises
    ------
    FeedReadError
        If the directory or one of the files does not exist.
    FeedFormatError
        If a table lacks one of its required columns.
    """
    if not os.path.isdir(gtfs_path):
        raise FeedReadError(gtfs_path, "not a directory")

    logger.info(f"Reading GTFS files from {gtfs_path}")
    return FeedTables(
        stops=_read_table(gtfs_path, "stops.txt"),
        stop_times=_read_table(gtfs_path, "stop_times.txt"),
        trips=_read_table(gtfs_path, "trips.txt"),
        routes=_read_table(gtfs_path, "routes.txt"),
    )


def _seconds_or_none(time_str: str) -> Optional[int]:
    # Non-timepoint stops may leave the times blank
    if not time_str:
        return None
    try:
        return parse_time_to_seconds(time_str)
    except ValueError:
        return None


def _resolve_parents(stops: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, str]]:
    """
    Splits stops into stations and platforms.

    Returns the station rows and a mapping from every stop_id that belongs to a
    station (the station itself included) to the station's stop_id.
    """
    stops = stops.drop_duplicates(subset="stop_id", keep="first")
    location_type = stops["location_type"]
    parent = stops["parent_station"]

    is_station = location_type == "1"
    # Plain stops without a parent serve as their own station
    is_standalone = location_type.isin(["", "0"]) & (parent == "")
    station_rows = stops[is_station | is_standalone]
    platforms = stops[~is_station & (parent != "")]

    stop_to_station = dict(zip(platforms["stop_id"], platforms["parent_station"]))
    stop_to_station.update((stop_id, stop_id) for stop_id in station_rows["stop_id"])
    return station_rows, stop_to_station


def _attribute_routes(stop_times: pd.DataFrame, route_short_names: Dict[str, str]) -> Dict[str, Tuple[str, ...]]:
    """Sorted, unique route short names seen at each station."""
    attributed = pd.DataFrame(
        {
            "station_id": stop_times["station_id"],
            "route": stop_times["route_id"].map(route_short_names),
        }
    ).dropna()
    attributed = attributed[attributed["route"] != ""]

    routes_by_station = {}
    for station_id, route in zip(attributed["station_id"], attributed["route"]):
        routes_by_station.setdefault(station_id, set()).add(route)
    return {
        station_id: tuple(sorted(routes))
        for station_id, routes in routes_by_station.items()
    }


def _derive_edges(
    stop_times: pd.DataFrame,
    station_ids: set,
    max_edge_travel_time: int,
) -> Tuple[Tuple[Edge, ...], Dict[str, int]]:
    """
    Pairs consecutive stop times of every trip and aggregates them into edges.

    Returns the edges and the number of discarded observations per reason.
    """
    discarded = {}

    timed = stop_times.dropna(subset=["route_id"]).copy()
    timed["sequence"] = pd.to_numeric(timed["stop_sequence"], errors="coerce")
    bad_sequence = timed["sequence"].isna()
    discarded["invalid stop_sequence"] = int(bad_sequence.sum())
    timed = timed[~bad_sequence].copy()
    if timed.empty:
        return (), discarded

    timed["departure_sec"] = pd.to_numeric(timed["departure_time"].map(_seconds_or_none))
    timed["arrival_sec"] = pd.to_numeric(timed["arrival_time"].map(_seconds_or_none))
    timed = timed.sort_values(["trip_id", "sequence"], kind="mergesort")

    following = timed.groupby("trip_id", sort=False)[["station_id", "arrival_sec"]].shift(-1)
    pairs = pd.DataFrame(
        {
            "from_id": timed["station_id"],
            "to_id": following["station_id"],
            "route_id": timed["route_id"],
            "departure_sec": timed["departure_sec"],
            "arrival_sec": following["arrival_sec"],
        }
    ).dropna(subset=["to_id"])

    # Moving between platforms of one station is not a hop
    pairs = pairs[pairs["from_id"] != pairs["to_id"]]

    travel = pairs["arrival_sec"] - pairs["departure_sec"]
    # Service day rollover past midnight
    travel = travel.where(travel >= 0, travel + SECONDS_PER_DAY)

    missing_times = travel.isna()
    implausible = ~missing_times & ((travel < 0) | (travel > max_edge_travel_time))
    unknown_station = ~(pairs["from_id"].isin(station_ids) & pairs["to_id"].isin(station_ids))
    unknown_station &= ~(missing_times | implausible)

    discarded["missing or malformed times"] = int(missing_times.sum())
    discarded["implausible travel time"] = int(implausible.sum())
    discarded["unknown station"] = int(unknown_station.sum())

    if logger.isEnabledFor(logging.DEBUG):
        for row, seconds in zip(pairs[implausible].itertuples(index=False), travel[implausible]):
            logger.debug(
                f"Discarded {row.from_id} -> {row.to_id} on route {row.route_id}: {seconds:.0f} s"
            )

    keep = ~(missing_times | implausible | unknown_station)
    kept = pairs[keep].assign(travel_time=travel[keep])
    if kept.empty:
        return (), discarded

    aggregated = kept.groupby(["from_id", "to_id", "route_id"])["travel_time"].agg(
        aggregate_travel_times
    )
    edges = tuple(
        Edge(from_id=from_id, to_id=to_id, travel_time_sec=int(travel_time), route_id=route_id)
        for (from_id, to_id, route_id), travel_time in aggregated.items()
    )
    return edges, discarded


def _report_discards(discarded: Dict[str, int]):
    total = sum(discarded.values())
    if not total:
        return
    details = ", ".join(f"{count} {reason}" for reason, count in discarded.items() if count)
    message = f"Discarded {total} stop time observations ({details})"
    logger.warning(message)
    warnings.warn(message, DataQualityWarning, stacklevel=3)


def build_network(
    feed: FeedTables,
    max_edge_travel_time: int = MAX_EDGE_TRAVEL_TIME_SEC,
) -> Network:
    """
    Collapses platforms into parent stations and derives the station graph edges.

    Parameters
    ----------
    feed : FeedTables
        Tables returned by :func:`read_feed`.
    max_edge_travel_time : int, optional
        Observations slower than this many seconds between two consecutive
        stops are discarded. Default is one hour.

    Returns
    -------
    Network
        Stations with their served routes and median-weighted edges.

    Notes
    -----
    Each edge is keyed by ``(from station, to station, route_id)`` and weighted
    by the median of all surviving trip observations, rounded half-up.
    Discarded observations are reported once with a :class:`DataQualityWarning`.
    """
    logger.info("Building station maps")
    station_rows, stop_to_station = _resolve_parents(feed.stops)

    trip_to_route = dict(zip(feed.trips["trip_id"], feed.trips["route_id"]))
    route_short_names = dict(zip(feed.routes["route_id"], feed.routes["route_short_name"]))

    stop_times = feed.stop_times
    stop_times = stop_times.assign(
        station_id=stop_times["stop_id"].map(stop_to_station).fillna(stop_times["stop_id"]),
        route_id=stop_times["trip_id"].map(trip_to_route),
    )

    logger.info("Mapping routes to stations")
    routes_served = _attribute_routes(stop_times, route_short_names)

    lat = pd.to_numeric(station_rows["stop_lat"], errors="coerce")
    lon = pd.to_numeric(station_rows["stop_lon"], errors="coerce")
    if "wheelchair_boarding" in station_rows.columns:
        accessible = station_rows["wheelchair_boarding"] == "1"
    else:
        accessible = pd.Series(False, index=station_rows.index)

    no_coordinates = lat.isna() | lon.isna()
    if no_coordinates.any():
        message = f"Dropped {int(no_coordinates.sum())} stations without valid coordinates"
        logger.warning(message)
        warnings.warn(message, DataQualityWarning, stacklevel=2)

    stations = tuple(
        Station(
            id=stop_id,
            name=name,
            lat=float(station_lat),
            lon=float(station_lon),
            accessible=bool(is_accessible),
            routes_served=routes_served.get(stop_id, ()),
        )
        for stop_id, name, station_lat, station_lon, is_accessible, invalid in zip(
            station_rows["stop_id"],
            station_rows["stop_name"],
            lat,
            lon,
            accessible,
            no_coordinates,
        )
        if not invalid
    )

    logger.info("Building edges from stop_times")
    station_ids = {station.id for station in stations}
    edges, discarded = _derive_edges(stop_times, station_ids, max_edge_travel_time)
    _report_discards(discarded)

    logger.info(f"Processed {len(stations)} stations and {len(edges)} edges")
    return Network(stations=stations, edges=edges)


def feed_to_network(
    gtfs_path: str,
    validate: bool = False,
    max_edge_travel_time: int = MAX_EDGE_TRAVEL_TIME_SEC,
) -> Network:
    """
    Creates the station network from a GTFS directory.

    Parameters
    ----------
    gtfs_path : str
        Path to the GTFS files.
    validate : bool, optional
        Run :func:`nxisochrone.functions.validate_feed` and abort on critical
        errors. Default is False.
    max_edge_travel_time : int, optional
        Upper bound for a single hop, in seconds.

    Returns
    -------
    Network

    Raises
    ------
    FeedReadError, FeedFormatError
        The feed cannot be ingested.
    """
    feed = read_feed(gtfs_path)
    if validate and not validate_feed(gtfs_path):
        raise FeedFormatError(gtfs_path, message="The GTFS feed is not valid")
    return build_network(feed, max_edge_travel_time=max_edge_travel_time)


def save_network(network: Network, path: str):
    """Writes the network as a JSON document with ``stations`` and ``edges`` arrays."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(network.to_dict(), f, indent=2)
    logger.info(f"Network saved to {path}")


def load_network(path: str) -> Network:
    """
    Reads a network document written by :func:`save_network`.

    Raises
    ------
    NetworkLoadError
        If the file is missing, is not JSON or lacks station/edge fields.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise NetworkLoadError(f"Network file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise NetworkLoadError(f"Network file {path} is not valid JSON: {e}") from e

    try:
        network = Network.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise NetworkLoadError(f"Network file {path} is malformed: {e!r}") from e

    logger.info(f"Loaded {len(network.stations)} stations and {len(network.edges)} edges")
    return network


def stations_to_gdf(network: Network) -> gpd.GeoDataFrame:
    """
    Station points as a GeoDataFrame in EPSG:4326.

    Columns: ``id``, ``name``, ``accessible``, ``routes_served``, ``geometry``.
    """
    stations = network.stations
    return gpd.GeoDataFrame(
        {
            "id": [station.id for station in stations],
            "name": [station.name for station in stations],
            "accessible": [station.accessible for station in stations],
            "routes_served": [list(station.routes_served) for station in stations],
        },
        geometry=gpd.points_from_xy(
            [station.lon for station in stations],
            [station.lat for station in stations],
        ),
        crs=CRS_WGS84,
    )


def edges_to_gdf(network: Network) -> gpd.GeoDataFrame:
    """
    Edges as straight LineStrings between station coordinates, EPSG:4326.

    Edges whose endpoints are not stations of the network are skipped.
    """
    station_map = network.station_map()
    records = []
    for edge in network.edges:
        from_station = station_map.get(edge.from_id)
        to_station = station_map.get(edge.to_id)
        if from_station is None or to_station is None:
            continue
        records.append(
            {
                "from_id": edge.from_id,
                "to_id": edge.to_id,
                "travel_time_sec": edge.travel_time_sec,
                "route_id": edge.route_id,
                "geometry": LineString(
                    [(from_station.lon, from_station.lat), (to_station.lon, to_station.lat)]
                ),
            }
        )

    columns = ["from_id", "to_id", "travel_time_sec", "route_id", "geometry"]
    return gpd.GeoDataFrame(
        pd.DataFrame(records, columns=columns), geometry="geometry", crs=CRS_WGS84
    )
