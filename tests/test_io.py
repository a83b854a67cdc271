"""Tests for I/O functionality."""

import json
import os
import tempfile

import pytest
import yaml
from threebody_sim.io.state_io import StateFormatError, export_state, load_state, parse_state, save_state
from threebody_sim.presets import Figure8


def figure8_export():
    return export_state(Figure8().generate(), time=1.5, gravity_g=1.0, scenario="figure8",
                        physics_mode="RK4", enable_collisions=True, sim_speed=2.0, trail_length=150)


def test_export_shape():
    state = figure8_export()

    assert set(state) == {"scenario", "time", "gravityG", "bodies", "settings", "exportedAt"}
    assert state["settings"] == {
        "physicsMode": "RK4",
        "enableCollisions": True,
        "simSpeed": 2.0,
        "trailLength": 150,
    }
    assert len(state["bodies"]) == 3
    assert state["bodies"][0]["color"] == 0x3B82F6
    # Plain JSON types only
    json.dumps(state)


@pytest.mark.parametrize("suffix", [".json", ".yaml"])
def test_save_load(suffix):
    """Test saving and loading JSON and YAML files."""
    state = figure8_export()

    with tempfile.NamedTemporaryFile(mode='w', suffix=suffix, delete=False) as f:
        temp_path = f.name

    try:
        save_state(state, temp_path)
        loaded = load_state(temp_path)

        assert loaded["bodies"] == state["bodies"]
        assert loaded["time"] == 1.5
        assert loaded["settings"] == state["settings"]
        assert loaded["scenario"] == "figure8"
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)


def test_unsupported_format():
    with pytest.raises(ValueError):
        save_state(figure8_export(), "state.npz")


def test_partial_records_are_repaired():
    data = {"bodies": [{"x": 1.0, "vy": 0.5}, {"mass": 2.0, "color": 7}]}

    with pytest.warns(UserWarning, match="missing body fields"):
        state = parse_state(data)

    first, second = state["bodies"]
    assert first == {"x": 1.0, "y": 0.0, "z": 0.0, "vx": 0.0, "vy": 0.5, "vz": 0.0,
                     "mass": 1.0, "color": 0xFFFFFF}
    assert second["mass"] == 2.0
    assert second["color"] == 7
    assert state["settings"]["physicsMode"] == "EULER"


def test_missing_bodies_rejected():
    with pytest.raises(StateFormatError):
        parse_state({"scenario": "x"})
    with pytest.raises(StateFormatError):
        parse_state({"bodies": "three"})
    with pytest.raises(StateFormatError):
        parse_state([1, 2, 3])


@pytest.mark.parametrize("body", [
    {"mass": 0.0},
    {"mass": -3.0},
    {"x": "left"},
    {"vx": float("nan")},
    {"y": True},
])
def test_invalid_fields_rejected(body):
    with pytest.raises(StateFormatError):
        parse_state({"bodies": [body]})


def test_load_invalid_json():
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        f.write("{not json")
        temp_path = f.name

    try:
        with pytest.raises(StateFormatError):
            load_state(temp_path)
    finally:
        os.remove(temp_path)


def test_yaml_file_is_plain():
    """YAML output uses only safe tags so other tools can read it."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yml', delete=False) as f:
        temp_path = f.name
    try:
        save_state(figure8_export(), temp_path)
        with open(temp_path) as f:
            assert yaml.safe_load(f)["gravityG"] == 1.0
    finally:
        os.remove(temp_path)
