# ruff: noqa: F401
"""
NxIsochrone is a Python package for computing commute isochrones over public transit networks.
It uses General Transit Feed Specification (GTFS) data to build a station graph and find the area reachable within a travel time budget.

Key Features:
- Station Network Creation: NxIsochrone collapses GTFS platforms into parent stations and weights every station-to-station hop by its median observed travel time.
- Budget-Bounded Routing: A multi-source Dijkstra search finds every station reachable by walking and riding transit within a time budget.
- Isochrone Polygons: Walksheds around reachable stations are merged into a single polygon, with a bounded cache for repeated queries.
"""
__version__ = "0.1.0"

from .models import Coordinate
from .models import Station
from .models import Edge
from .models import Network
from .models import StartStation
from .models import ReachableStation
from .models import Isochrone

from .errors import NxIsochroneError
from .errors import FeedError
from .errors import FeedReadError
from .errors import FeedFormatError
from .errors import NetworkLoadError
from .errors import DataQualityWarning

from .loaders import read_feed
from .loaders import build_network
from .loaders import feed_to_network
from .loaders import save_network
from .loaders import load_network
from .loaders import stations_to_gdf
from .loaders import edges_to_gdf

from .routers import build_graph
from .routers import outgoing_edges
from .routers import multi_source_reachability
from .routers import single_source_reachability
from .routers import find_reachable_stations

from .connectors import find_nearest_stations

from .accessibility import create_isochrone
from .accessibility import isochrones_for_budgets
from .accessibility import isochrone_to_gdf
from .accessibility import union_buffers
from .accessibility import generate_station_buffers

from .cache import IsochroneCache
from .cache import MISSING

from .engine import IsochroneEngine

from .functions import validate_feed
from .functions import determine_utm_zone
from .functions import aggregate_travel_times

from .converters import parse_seconds_to_time
from .converters import parse_time_to_seconds
