"""Command line entry point: build a network from GTFS and compute isochrones."""
import argparse
import json
import sys

import geopandas as gpd
import pandas as pd

from .accessibility import isochrone_to_gdf
from .config import CRS_WGS84, DEFAULT_WALK_DISTANCE_M
from .engine import IsochroneEngine
from .errors import FeedError, NetworkLoadError
from .loaders import feed_to_network, load_network, save_network
from .models import Coordinate
from .other import logger, set_log_level


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nxisochrone",
        description="Transit commute isochrones from GTFS feeds.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Verbosity of the package logger.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build the station network from a GTFS directory.")
    build.add_argument("gtfs_path", help="Directory with stops.txt, stop_times.txt, trips.txt, routes.txt.")
    build.add_argument("output", help="Path of the network JSON document to write.")
    build.add_argument(
        "--validate",
        action="store_true",
        help="Check referential integrity of the feed before building.",
    )

    isochrone = subparsers.add_parser("isochrone", help="Compute isochrones from a built network.")
    isochrone.add_argument("network", help="Network JSON document written by 'build'.")
    isochrone.add_argument("--lat", type=float, required=True, help="Origin latitude.")
    isochrone.add_argument("--lon", type=float, required=True, help="Origin longitude.")
    isochrone.add_argument(
        "--minutes",
        type=float,
        nargs="+",
        default=[30],
        help="One or more travel time budgets in minutes.",
    )
    isochrone.add_argument(
        "--walk-distance",
        type=float,
        default=DEFAULT_WALK_DISTANCE_M,
        help="Walking distance limit in meters.",
    )
    isochrone.add_argument(
        "--processes",
        type=int,
        default=1,
        help="Worker processes for several budgets.",
    )
    isochrone.add_argument(
        "--output",
        help="GeoJSON file to write. Printed to stdout when omitted.",
    )
    return parser


def _build(args) -> int:
    try:
        network = feed_to_network(args.gtfs_path, validate=args.validate)
    except FeedError as e:
        logger.error(f"Ingestion aborted: {e}")
        return 1
    save_network(network, args.output)
    return 0


def _isochrone(args) -> int:
    try:
        network = load_network(args.network)
    except NetworkLoadError as e:
        logger.error(str(e))
        return 1

    engine = IsochroneEngine(network)
    origin = Coordinate(lat=args.lat, lon=args.lon)
    budgets = [int(round(minutes * 60)) for minutes in args.minutes]
    results = engine.compute_isochrones(
        origin, budgets, walk_distance_limit=args.walk_distance, num_processes=args.processes
    )

    frames = []
    for budget, isochrone in results.items():
        if isochrone is None:
            logger.info(f"No stations reachable within {budget / 60:g} minutes")
            continue
        logger.info(f"{budget / 60:g} minutes: {isochrone.total_stations} reachable stations")
        frames.append(isochrone_to_gdf(isochrone, max_travel_time_sec=budget))

    if frames:
        collection = gpd.GeoDataFrame(pd.concat(frames, ignore_index=True), crs=CRS_WGS84).to_json()
    else:
        collection = json.dumps({"type": "FeatureCollection", "features": []})

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(collection)
    else:
        sys.stdout.write(collection + "\n")
    return 0


def main(argv=None) -> int:
    args = create_parser().parse_args(argv)
    set_log_level(args.log_level)
    if args.command == "build":
        return _build(args)
    return _isochrone(args)
