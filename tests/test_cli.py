"""Tests for the command-line runner."""

import os
import tempfile

import yaml

from threebody_sim.cli.main import main
from threebody_sim.io.state_io import load_state


def test_cli_prints_diagnostics(capsys):
    main(["--steps", "20", "--debug-every", "10", "--integrator", "rk4"])

    out = capsys.readouterr().out
    assert "Running simulation: figure8 with 3 bodies" in out
    assert "[Diag] step=10" in out
    assert "[Diag] step=20" in out
    assert "Simulation complete!" in out


def test_cli_saves_state(capsys):
    with tempfile.NamedTemporaryFile(suffix='.json', delete=False) as f:
        temp_path = f.name

    try:
        main(["--preset", "chaos", "--seed", "3", "--add-random", "2", "--steps", "5", "--save-state", temp_path])
        state = load_state(temp_path)
        assert len(state["bodies"]) == 5
        assert state["time"] > 0
    finally:
        os.remove(temp_path)


def test_cli_list_backends(capsys):
    main(["--list-backends"])
    assert "numpy" in capsys.readouterr().out


def write_config(values):
    with tempfile.NamedTemporaryFile('w', suffix='.yaml', delete=False) as f:
        yaml.safe_dump(values, f)
        return f.name


def test_cli_keeps_gravity_from_config_file(capsys):
    config_path = write_config({'gravity_g': 2.5})
    with tempfile.NamedTemporaryFile(suffix='.json', delete=False) as f:
        state_path = f.name

    try:
        main(["--config", config_path, "--steps", "2", "--save-state", state_path])
        assert load_state(state_path)["gravityG"] == 2.5

        main(["--config", config_path, "--G", "0.5", "--steps", "2", "--save-state", state_path])
        assert load_state(state_path)["gravityG"] == 0.5
    finally:
        os.remove(config_path)
        os.remove(state_path)


def test_cli_uses_preset_gravity_without_override(capsys):
    config_path = write_config({'integrator': 'rk4'})
    with tempfile.NamedTemporaryFile(suffix='.json', delete=False) as f:
        state_path = f.name

    try:
        main(["--config", config_path, "--steps", "2", "--save-state", state_path])
        assert load_state(state_path)["gravityG"] == 1.0
    finally:
        os.remove(config_path)
        os.remove(state_path)
