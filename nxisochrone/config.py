"""Package-wide constants. Every value can be overridden through keyword arguments."""

# CRS of the persisted network and of every returned geometry
CRS_WGS84 = "EPSG:4326"

SECONDS_PER_DAY = 86400
# Consecutive stop pairs slower than this are treated as bad data
MAX_EDGE_TRAVEL_TIME_SEC = 3600

METERS_PER_MILE = 1609.344
# 3 mph
WALKING_SPEED_MPS = 3 * METERS_PER_MILE / 3600
# 0.5 mile, roughly ten minutes on foot
DEFAULT_WALK_DISTANCE_M = 0.5 * METERS_PER_MILE
DEFAULT_MAX_TRAVEL_TIME_SEC = 30 * 60

# Isochrone cache
CACHE_COORDINATE_PRECISION = 4
CACHE_TIME_GRANULARITY_SEC = 15 * 60
CACHE_MAX_ENTRIES = 128

REQUIRED_FEED_COLUMNS = {
    "stops.txt": [
        "stop_id", "stop_name", "stop_lat", "stop_lon",
        "location_type", "parent_station",
    ],
    "stop_times.txt": [
        "trip_id", "stop_id", "arrival_time", "departure_time", "stop_sequence",
    ],
    "trips.txt": ["trip_id", "route_id"],
    "routes.txt": ["route_id", "route_short_name"],
}

OPTIONAL_FEED_COLUMNS = {
    "stops.txt": ["wheelchair_boarding"],
}
