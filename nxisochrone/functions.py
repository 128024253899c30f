import math
import os
import statistics
import warnings
from typing import Iterable

import geopandas as gpd
import pandas as pd

from .config import CRS_WGS84, OPTIONAL_FEED_COLUMNS, REQUIRED_FEED_COLUMNS
from .converters import round_half_up
from .other import logger


def determine_utm_zone(gdf: gpd.GeoDataFrame) -> str:
    """
    Determines the UTM zone for a GeoDataFrame based on its centroid.

    Parameters
    ----------
    gdf : GeoDataFrame or GeoSeries
        The input geospatial data.

    Returns
    -------
    epsg_code: str
        UTM EPSG code as string.
    """
    # Ensure the data is in geographic coordinates (EPSG:4326)
    gdf_proj = gdf.to_crs(CRS_WGS84)

    minx, miny, maxx, maxy = gdf_proj.total_bounds
    centroid_longitude = (minx + maxx) / 2

    # Zone 60 also covers the antimeridian itself
    utm_zone = min(math.floor((centroid_longitude + 180) / 6) + 1, 60)
    hemisphere = "north" if (miny + maxy) / 2 >= 0 else "south"
    epsg_code = (
        f"EPSG:326{utm_zone:02d}" if hemisphere == "north" else f"EPSG:327{utm_zone:02d}"
    )

    return epsg_code


def aggregate_travel_times(travel_times: Iterable[float]) -> int:
    """
    Collapses the observed travel times of one edge into a single weight.

    The median is used, so even-sized samples average the two central values.
    The result is rounded half-up to a whole second.

    >>> aggregate_travel_times([100, 100, 300])
    100
    >>> aggregate_travel_times([100, 200])
    150
    """
    values = list(travel_times)
    if not values:
        raise ValueError("Cannot aggregate an empty list of travel times.")
    return round_half_up(statistics.median(values))


def read_header(path: str) -> list:
    """Column names of a CSV table, stripped of whitespace and byte-order mark."""
    header = pd.read_csv(path, nrows=0, encoding="utf-8-sig").columns
    return [str(column).strip() for column in header]


def validate_feed(gtfs_path: str) -> bool:
    """
    Validates the GTFS feed located at the specified path.

    Checks that every required file exists with its required columns, and
    that trips, stops and routes referenced from other tables are defined.

    Parameters
    ----------
    gtfs_path : str
        Path to the GTFS dataset directory.

    Returns
    -------
    bool
        True if the GTFS feed is valid, False otherwise.
    """
    if not os.path.isdir(gtfs_path):
        warnings.warn(f"Invalid GTFS path: {gtfs_path}")
        return False

    for filename, columns in REQUIRED_FEED_COLUMNS.items():
        file_path = os.path.join(gtfs_path, filename)
        if not os.path.isfile(file_path):
            warnings.warn(f"Missing required file: {filename}")
            return False
        try:
            header = read_header(file_path)
        except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
            warnings.warn(f"{filename} cannot be parsed: {e}")
            return False
        missing = [column for column in columns if column not in header]
        if missing:
            warnings.warn(f"{filename} is missing required columns: {', '.join(missing)}")
            return False

    def read(filename, columns):
        return pd.read_csv(
            os.path.join(gtfs_path, filename),
            usecols=lambda column: column.strip() in columns,
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
        ).rename(columns=lambda column: column.strip())

    stops_df = read("stops.txt", ["stop_id"])
    routes_df = read("routes.txt", ["route_id"])
    trips_df = read("trips.txt", ["trip_id", "route_id"])
    stop_times_df = read(
        "stop_times.txt", ["trip_id", "stop_id", "arrival_time", "departure_time"]
    )

    critical_errors = False

    if stops_df.empty:
        warnings.warn("stops.txt contains no stops.")
        critical_errors = True

    if stop_times_df.empty:
        warnings.warn("stop_times.txt contains no stop times.")
        critical_errors = True

    unknown_routes = set(trips_df["route_id"]) - set(routes_df["route_id"])
    if unknown_routes:
        warnings.warn(f"Mismatch in route IDs between trips and routes files: {len(unknown_routes)} unknown.")
        critical_errors = True

    unknown_trips = set(stop_times_df["trip_id"]) - set(trips_df["trip_id"])
    if unknown_trips:
        warnings.warn(f"Mismatch in trip IDs between stop_times and trips files: {len(unknown_trips)} unknown.")
        critical_errors = True

    unknown_stops = set(stop_times_df["stop_id"]) - set(stops_df["stop_id"])
    if unknown_stops:
        warnings.warn(f"Mismatch in stop IDs between stop_times and stops files: {len(unknown_stops)} unknown.")
        critical_errors = True

    # Blank times are legal for non-timepoint stops, they only cost edges
    time_format_regex = r'^\s*\d{1,2}:[0-5]\d:[0-5]\d\s*$'
    for column in ("arrival_time", "departure_time"):
        times = stop_times_df[column]
        invalid = times[(times != "") & ~times.str.match(time_format_regex)]
        if not invalid.empty:
            logger.warning(f"{len(invalid)} malformed values in stop_times.txt {column}")

    optional = OPTIONAL_FEED_COLUMNS["stops.txt"]
    header = read_header(os.path.join(gtfs_path, "stops.txt"))
    for column in optional:
        if column not in header:
            logger.info(f"stops.txt has no {column} column, stations default to not accessible")

    if critical_errors:
        logger.warning("GTFS feed contains critical errors.")
        return False

    logger.info("GTFS feed is valid.")
    return True
