import geopandas as gpd
import pytest
from shapely.geometry import Point

import nxisochrone as ni
from nxisochrone.converters import round_half_up, walking_time_seconds


def test_determine_utm_zone_north_hemisphere():
    # Create a GeoDataFrame with a centroid in the northern hemisphere
    gdf = gpd.GeoDataFrame(geometry=[Point(0, 30)], crs="EPSG:4326")
    utm_zone = ni.determine_utm_zone(gdf)
    assert utm_zone == "EPSG:32631"


def test_determine_utm_zone_equator():
    # Create a GeoDataFrame with a centroid on the equator
    gdf = gpd.GeoDataFrame(geometry=[Point(0, 0)], crs="EPSG:4326")
    utm_zone = ni.determine_utm_zone(gdf)
    assert utm_zone == "EPSG:32631"


def test_determine_utm_zone_south_hemisphere():
    # Create a GeoDataFrame with a centroid in the southern hemisphere
    gdf = gpd.GeoDataFrame(geometry=[Point(0, -30)], crs="EPSG:4326")
    utm_zone = ni.determine_utm_zone(gdf)
    assert utm_zone == "EPSG:32731"


def test_determine_utm_zone():
    gdf = gpd.GeoDataFrame(geometry=[Point(35, 55)], crs="EPSG:4326")
    utm_zone = ni.determine_utm_zone(gdf)
    assert utm_zone == "EPSG:32636"


def test_determine_utm_zone_single_digit_zone():
    gdf = gpd.GeoDataFrame(geometry=[Point(-177, 10)], crs="EPSG:4326")
    utm_zone = ni.determine_utm_zone(gdf)
    assert utm_zone == "EPSG:32601"


def test_determine_utm_zone_new_york():
    gdf = gpd.GeoSeries([Point(-73.98, 40.75)], crs="EPSG:4326")
    assert ni.determine_utm_zone(gdf) == "EPSG:32618"


@pytest.mark.parametrize(
    "values, expected",
    [
        ([100], 100),
        ([100, 100, 300], 100),
        ([100, 200], 150),
        ([120, 121], 121),
        ([30, 10, 20], 20),
    ],
)
def test_aggregate_travel_times(values, expected):
    assert ni.aggregate_travel_times(values) == expected


def test_aggregate_travel_times_empty():
    with pytest.raises(ValueError):
        ni.aggregate_travel_times([])


@pytest.mark.parametrize(
    "time_str, expected",
    [
        ("00:00:00", 0),
        ("8:05:30", 29130),
        ("23:59:59", 86399),
        ("25:00:00", 90000),
    ],
)
def test_parse_time_to_seconds(time_str, expected):
    assert ni.parse_time_to_seconds(time_str) == expected


@pytest.mark.parametrize("time_str", ["", "12:00", "ab:cd:ef", "48:00:00", "10:60:00", None])
def test_parse_time_to_seconds_invalid(time_str):
    with pytest.raises(ValueError):
        ni.parse_time_to_seconds(time_str)


def test_parse_seconds_to_time():
    assert ni.parse_seconds_to_time(29130) == "08:05:30"


def test_round_half_up():
    assert round_half_up(100.5) == 101
    assert round_half_up(100.49) == 100
    # Python's round() would give 2 here
    assert round_half_up(2.5) == 3


def test_walking_time_seconds():
    assert walking_time_seconds(1341.12, 1.34112) == 1000
    assert walking_time_seconds(0, 1.34112) == 0

    with pytest.raises(ValueError):
        walking_time_seconds(100, 0)
