import json

import pytest

import nxisochrone as ni
from nxisochrone.loaders import read_feed

from gtfs_data import STOPS, STOP_TIMES, TRIPS, write_feed


@pytest.fixture
def network(gtfs_path):
    with pytest.warns(ni.DataQualityWarning):
        return ni.feed_to_network(gtfs_path)


def edge_map(network):
    return {(e.from_id, e.to_id, e.route_id): e.travel_time_sec for e in network.edges}


def test_read_feed(gtfs_path):
    feed = read_feed(gtfs_path)

    assert len(feed.stops) == 10
    assert len(feed.stop_times) == 22
    assert list(feed.trips.columns) == ["route_id", "trip_id"]
    # Quoted field containing the delimiter
    assert feed.stops.loc[0, "stop_name"] == "Van Cortlandt Park, 242 St"


@pytest.mark.parametrize("missing", ["stops", "stop_times", "trips", "routes"])
def test_missing_file(tmp_path, missing):
    path = write_feed(tmp_path / "gtfs", **{missing: None})

    with pytest.raises(ni.FeedReadError, match=f"{missing}.txt"):
        read_feed(path)


def test_missing_directory(tmp_path):
    with pytest.raises(ni.FeedReadError):
        read_feed(str(tmp_path / "nowhere"))


def test_missing_column(tmp_path):
    path = write_feed(tmp_path / "gtfs", trips="service_id,trip_id\nWeekday,T1\n")

    with pytest.raises(ni.FeedFormatError) as excinfo:
        read_feed(path)

    assert excinfo.value.filename == "trips.txt"
    assert excinfo.value.missing_columns == ["route_id"]


def test_empty_file_is_format_error(tmp_path):
    path = write_feed(tmp_path / "gtfs", routes="")

    with pytest.raises(ni.FeedFormatError):
        read_feed(path)


def test_header_with_bom_and_spaces(tmp_path):
    path = write_feed(
        tmp_path / "gtfs",
        routes="\ufeffroute_id, route_short_name\n1, 1\n",
    )

    feed = read_feed(path)

    assert list(feed.routes.columns) == ["route_id", "route_short_name"]
    assert feed.routes.loc[0, "route_short_name"] == "1"


def test_parent_stations(network):
    stations = network.station_map()

    # Platforms collapse into parents, the parentless stop 105 is its own station
    assert sorted(stations) == ["101", "103", "104", "105"]
    assert stations["101"].name == "Van Cortlandt Park, 242 St"
    assert stations["101"].accessible is True
    assert stations["103"].accessible is False
    assert stations["104"].accessible is False


def test_accessible_defaults_to_false_without_column(tmp_path):
    # Drop the trailing wheelchair_boarding column
    stops = "\n".join(line.rsplit(",", 1)[0] for line in STOPS.strip().splitlines()) + "\n"
    path = write_feed(tmp_path / "gtfs", stops=stops)

    with pytest.warns(ni.DataQualityWarning):
        network = ni.feed_to_network(path)

    assert not any(station.accessible for station in network.stations)


def test_routes_served(network):
    stations = network.station_map()

    assert stations["101"].routes_served == ("1",)
    assert stations["104"].routes_served == ("1", "2")
    assert stations["105"].routes_served == ("2",)
    for station in network.stations:
        assert list(station.routes_served) == sorted(set(station.routes_served))


def test_edges(network):
    assert edge_map(network) == {
        # median of 100, 100, 300
        ("101", "103", "1"): 100,
        ("103", "104", "1"): 120,
        # median of 100, 200
        ("104", "103", "1"): 150,
        # 23:59:50 -> 00:00:20
        ("103", "101", "1"): 30,
        # parallel edge on another route is kept apart
        ("101", "103", "X"): 120,
        ("104", "105", "2"): 120,
    }


def test_edge_travel_times_are_bounded(network):
    for edge in network.edges:
        assert 0 <= edge.travel_time_sec <= 3600


def test_implausible_observation_warning(gtfs_path):
    with pytest.warns(ni.DataQualityWarning, match="1 implausible travel time"):
        ni.feed_to_network(gtfs_path)


def test_even_count_median_rounds_half_up(tmp_path):
    # 104S -> 105 on route 1: 120 s for T1, 121 s for T2
    stop_times = STOP_TIMES + "T1,08:06:00,08:06:00,105,11\nT2,09:06:01,09:06:01,105,4\n"
    path = write_feed(tmp_path / "gtfs", stop_times=stop_times)

    with pytest.warns(ni.DataQualityWarning, match="1 implausible travel time"):
        network = ni.feed_to_network(path)

    assert edge_map(network)[("104", "105", "1")] == 121


def test_one_hour_bound_is_inclusive(tmp_path):
    trips = TRIPS + "2,Weekday,T10\n2,Weekday,T11\n"
    # 105 -> 104N: exactly 3600 s on T10, 3601 s on T11
    stop_times = STOP_TIMES + (
        "T10,15:00:00,15:00:00,105,1\n"
        "T10,16:00:00,16:00:00,104N,2\n"
        "T11,17:00:00,17:00:00,105,1\n"
        "T11,18:00:01,18:00:01,104N,2\n"
    )
    path = write_feed(tmp_path / "gtfs", trips=trips, stop_times=stop_times)

    with pytest.warns(ni.DataQualityWarning, match="2 implausible travel time"):
        network = ni.feed_to_network(path)

    assert edge_map(network)[("105", "104", "2")] == 3600


def test_blank_times_are_discarded(tmp_path):
    stop_times = STOP_TIMES.replace("T2,09:04:00,09:04:00,104S,3", "T2,,,104S,3")
    path = write_feed(tmp_path / "gtfs", stop_times=stop_times)

    with pytest.warns(ni.DataQualityWarning, match="1 missing or malformed times"):
        network = ni.feed_to_network(path)

    assert edge_map(network)[("103", "104", "1")] == 120


def test_unknown_stop_is_discarded(tmp_path):
    stop_times = STOP_TIMES + "T9,14:05:00,14:05:00,999,3\n"
    path = write_feed(tmp_path / "gtfs", stop_times=stop_times)

    with pytest.warns(ni.DataQualityWarning, match="1 unknown station"):
        network = ni.feed_to_network(path)

    assert all("999" not in (edge.from_id, edge.to_id) for edge in network.edges)


def test_build_is_deterministic(gtfs_path):
    with pytest.warns(ni.DataQualityWarning):
        first = ni.feed_to_network(gtfs_path)
    with pytest.warns(ni.DataQualityWarning):
        second = ni.feed_to_network(gtfs_path)

    assert [s.id for s in first.stations] == [s.id for s in second.stations]
    assert edge_map(first) == edge_map(second)


def test_validate_feed(gtfs_path):
    assert ni.validate_feed(gtfs_path) is True


def test_validate_feed_unknown_stop(tmp_path):
    stop_times = STOP_TIMES + "T9,14:05:00,14:05:00,999,3\n"
    path = write_feed(tmp_path / "gtfs", stop_times=stop_times)

    with pytest.warns(UserWarning, match="stop IDs"):
        assert ni.validate_feed(path) is False

    with pytest.warns(UserWarning), pytest.raises(ni.FeedFormatError):
        ni.feed_to_network(path, validate=True)


def test_save_and_load_network(network, tmp_path):
    path = tmp_path / "processed" / "network.json"

    ni.save_network(network, str(path))
    document = json.loads(path.read_text())
    loaded = ni.load_network(str(path))

    assert set(document) == {"stations", "edges"}
    assert set(document["stations"][0]) == {"id", "name", "lat", "lon", "accessible", "routesServed"}
    assert set(document["edges"][0]) == {"fromId", "toId", "travelTimeSec", "routeId"}
    assert loaded == network


def test_load_network_errors(tmp_path):
    with pytest.raises(ni.NetworkLoadError, match="not found"):
        ni.load_network(str(tmp_path / "missing.json"))

    broken = tmp_path / "broken.json"
    broken.write_text("{")
    with pytest.raises(ni.NetworkLoadError, match="not valid JSON"):
        ni.load_network(str(broken))

    incomplete = tmp_path / "incomplete.json"
    incomplete.write_text(json.dumps({"stations": []}))
    with pytest.raises(ni.NetworkLoadError, match="malformed"):
        ni.load_network(str(incomplete))


def test_network_to_gdf(network):
    stations_gdf = ni.stations_to_gdf(network)
    edges_gdf = ni.edges_to_gdf(network)

    assert len(stations_gdf) == 4
    assert stations_gdf.crs.to_epsg() == 4326
    assert len(edges_gdf) == 6
    assert set(edges_gdf["route_id"]) == {"1", "2", "X"}
    assert edges_gdf.geometry.geom_type.unique().tolist() == ["LineString"]
