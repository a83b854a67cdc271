"""State I/O for saving and loading simulation states.

The persisted shape is::

    {scenario, time, gravityG,
     bodies: [{x, y, z, vx, vy, vz, mass, color}],
     settings: {physicsMode, enableCollisions, simSpeed, trailLength},
     exportedAt}
"""

import json
import math
import numbers
import warnings
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from threebody_sim.physics.body import DEFAULT_COLOR

NUMERIC_DEFAULTS = {
    "x": 0.0, "y": 0.0, "z": 0.0,
    "vx": 0.0, "vy": 0.0, "vz": 0.0,
    "mass": 1.0,
}


class StateFormatError(ValueError):
    """Imported data cannot be turned into a valid state."""


def export_state(
    bodies: Sequence[dict],
    time: float = 0.0,
    gravity_g: float = 1.0,
    scenario: str = "custom",
    physics_mode: str = "EULER",
    enable_collisions: bool = False,
    sim_speed: float = 1.0,
    trail_length: int = 300,
) -> Dict[str, Any]:
    """Build the persisted state dictionary from body records."""
    return {
        "scenario": scenario,
        "time": float(time),
        "gravityG": float(gravity_g),
        "bodies": [dict(b) for b in bodies],
        "settings": {
            "physicsMode": physics_mode,
            "enableCollisions": bool(enable_collisions),
            "simSpeed": float(sim_speed),
            "trailLength": int(trail_length),
        },
        "exportedAt": datetime.now(timezone.utc).isoformat(),
    }


def _parse_body(index: int, record: Any, repaired: List[str]) -> dict:
    if not isinstance(record, dict):
        raise StateFormatError(f"Body {index} is not an object")
    body = {}
    for key, default in NUMERIC_DEFAULTS.items():
        if key not in record or record[key] is None:
            repaired.append(f"{index}.{key}")
            body[key] = default
            continue
        value = record[key]
        if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
            raise StateFormatError(f"Body {index} field '{key}' must be a finite number, got {value!r}")
        body[key] = float(value)
    if body["mass"] <= 0:
        raise StateFormatError(f"Body {index} mass must be > 0, got {body['mass']}")
    color = record.get("color")
    if color is None:
        repaired.append(f"{index}.color")
        color = DEFAULT_COLOR
    body["color"] = color
    return body


def parse_state(data: Any) -> Dict[str, Any]:
    """Validate imported data and return a normalized state dictionary.

    A missing or non-list ``bodies`` array, a non-numeric field or a
    non-positive mass raises ``StateFormatError``. Missing fields on an
    otherwise valid body are filled in (position/velocity 0, mass 1, color
    white) and reported with a single warning.
    """
    if not isinstance(data, dict):
        raise StateFormatError("State must be an object")
    bodies = data.get("bodies")
    if not isinstance(bodies, list):
        raise StateFormatError("State has no 'bodies' array")

    repaired: List[str] = []
    parsed = [_parse_body(i, record, repaired) for i, record in enumerate(bodies)]
    if repaired:
        warnings.warn(f"Imported state had missing body fields, filled with defaults: {', '.join(repaired)}")

    settings = data.get("settings") or {}
    physics_mode = str(settings.get("physicsMode", "EULER")).upper()
    if physics_mode not in ("EULER", "RK4"):
        raise StateFormatError(f"Unknown physicsMode: {physics_mode}")

    try:
        return {
            "scenario": data.get("scenario", "custom"),
            "time": float(data.get("time", 0.0)),
            "gravityG": float(data.get("gravityG", 1.0)),
            "bodies": parsed,
            "settings": {
                "physicsMode": physics_mode,
                "enableCollisions": bool(settings.get("enableCollisions", False)),
                "simSpeed": float(settings.get("simSpeed", 1.0)),
                "trailLength": int(settings.get("trailLength", 300)),
            },
            "exportedAt": data.get("exportedAt"),
        }
    except (TypeError, ValueError) as exc:
        raise StateFormatError(f"Invalid state header: {exc}") from exc


def save_state(state: Dict[str, Any], output_path: str):
    """Save a state dictionary to file.

    Args:
        state: Dictionary as produced by ``export_state``
        output_path: Output file path (.json, .yaml or .yml)
    """
    output_path = Path(output_path)

    if output_path.suffix == '.json':
        with open(output_path, 'w') as f:
            json.dump(state, f, indent=2)
    elif output_path.suffix in ('.yaml', '.yml'):
        with open(output_path, 'w') as f:
            yaml.safe_dump(state, f, default_flow_style=False, sort_keys=False)
    else:
        raise ValueError(f"Unsupported file format: {output_path.suffix}. Use .json or .yaml")


def load_state(input_path: str) -> Dict[str, Any]:
    """Load and validate a state file.

    Args:
        input_path: Input file path

    Returns:
        Normalized state dictionary (see ``parse_state``)
    """
    input_path = Path(input_path)

    with open(input_path, 'r') as f:
        if input_path.suffix == '.json':
            try:
                data = json.load(f)
            except ValueError as exc:
                raise StateFormatError(f"Invalid JSON: {exc}") from exc
        elif input_path.suffix in ('.yaml', '.yml'):
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise StateFormatError(f"Invalid YAML: {exc}") from exc
        else:
            raise ValueError(f"Unsupported file format: {input_path.suffix}. Use .json or .yaml")

    return parse_state(data)
