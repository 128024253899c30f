import pytest

from nxisochrone import Edge, Network, Station

from gtfs_data import write_feed


@pytest.fixture
def gtfs_path(tmp_path):
    return write_feed(tmp_path / "gtfs")


@pytest.fixture
def line_network():
    """
    Stations on one meridian, 0.01 degree (about 1.1 km) apart.

    A -> B -> C by rail, D has no connections, E sits 900 m south of A
    and is the only way to reach F.
    """
    stations = (
        Station("A", "Alpha", 40.70, -74.00, routes_served=("1",)),
        Station("B", "Bravo", 40.71, -74.00, routes_served=("1",)),
        Station("C", "Charlie", 40.72, -74.00, routes_served=("1",)),
        Station("D", "Delta", 40.80, -74.00),
        Station("E", "Echo", 40.6919, -74.00, routes_served=("9",)),
        Station("F", "Foxtrot", 40.67, -74.00, routes_served=("9",)),
    )
    edges = (
        Edge("A", "B", 300, "1"),
        Edge("B", "C", 600, "1"),
        Edge("E", "F", 60, "9"),
    )
    return Network(stations=stations, edges=edges)
