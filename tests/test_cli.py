import json

import pytest

import nxisochrone as ni
from nxisochrone.cli import create_parser, main


@pytest.fixture
def network_path(gtfs_path, tmp_path):
    path = str(tmp_path / "network.json")
    with pytest.warns(ni.DataQualityWarning):
        assert main(["build", gtfs_path, path]) == 0
    return path


def test_build(network_path):
    network = ni.load_network(network_path)

    assert len(network.stations) == 4


def test_build_missing_directory(tmp_path):
    assert main(["build", str(tmp_path / "nowhere"), str(tmp_path / "network.json")]) == 1
    assert not (tmp_path / "network.json").exists()


def test_isochrone_to_file(network_path, tmp_path):
    output = tmp_path / "isochrones.geojson"

    code = main(
        [
            "isochrone", network_path,
            "--lat", "40.889248", "--lon", "-73.898583",
            "--minutes", "15", "30",
            "--output", str(output),
        ]
    )

    collection = json.loads(output.read_text())
    assert code == 0
    assert collection["type"] == "FeatureCollection"
    assert [f["properties"]["max_travel_time_sec"] for f in collection["features"]] == [900, 1800]
    assert collection["features"][1]["properties"]["total_stations"] == 4


def test_isochrone_no_result(network_path, capsys):
    code = main(["isochrone", network_path, "--lat", "0", "--lon", "0"])

    collection = json.loads(capsys.readouterr().out)
    assert code == 0
    assert collection == {"type": "FeatureCollection", "features": []}


def test_isochrone_missing_network(tmp_path):
    args = ["isochrone", str(tmp_path / "missing.json"), "--lat", "0", "--lon", "0"]

    assert main(args) == 1


def test_parser_defaults():
    args = create_parser().parse_args(["isochrone", "network.json", "--lat", "1", "--lon", "2"])

    assert args.minutes == [30]
    assert args.processes == 1
    assert args.output is None
