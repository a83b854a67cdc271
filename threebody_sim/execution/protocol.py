"""Message protocol between the coordinator side and the physics worker.

Messages cross the thread boundary as JSON text so neither side can keep a
reference into the other's arrays.

- ``{"type": "READY"}`` - sent once by the worker before it accepts work.
- ``{"type": "UPDATE", "bodies": [...], "config": {...}}`` - one step request.
- ``{"type": "RESULT", "bodies": [...], "stats": {...}, "removedIndices": [...]}``
- ``{"type": "ERROR", "message": "..."}`` - the request could not be served.
"""

import json
from typing import Any, Dict

from threebody_sim.execution.base import BASE_DT, StepConfig, StepResult, StepStats
from threebody_sim.physics.body import SimulationState
from threebody_sim.physics.force_calculator import SOFTENING_DEFAULT

READY = "READY"
UPDATE = "UPDATE"
RESULT = "RESULT"
ERROR = "ERROR"


class ProtocolError(ValueError):
    """A message did not match the protocol."""


def encode(message: Dict[str, Any]) -> str:
    return json.dumps(message)


def decode(payload: str) -> Dict[str, Any]:
    try:
        message = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"Undecodable message: {exc}") from exc
    if not isinstance(message, dict) or "type" not in message:
        raise ProtocolError("Message must be an object with a 'type' field")
    return message


def config_to_message(config: StepConfig) -> Dict[str, Any]:
    return {
        "simSpeed": config.sim_speed,
        "timeDirection": config.time_direction,
        "gravityG": config.G,
        "physicsMode": config.integrator,
        "enableCollisions": config.collisions_enabled,
        "skipIndex": config.excluded_index,
        "currentTime": config.current_time,
        "softening": config.softening,
        "baseDt": config.base_dt,
    }


def config_from_message(data: Dict[str, Any]) -> StepConfig:
    return StepConfig(
        sim_speed=data.get("simSpeed", 1.0),
        time_direction=data.get("timeDirection", 1),
        G=data.get("gravityG", 1.0),
        softening=data.get("softening", SOFTENING_DEFAULT),
        integrator=data.get("physicsMode", "EULER"),
        collisions_enabled=data.get("enableCollisions", False),
        excluded_index=data.get("skipIndex"),
        current_time=data.get("currentTime", 0.0),
        base_dt=data.get("baseDt", BASE_DT),
    )


def update_message(state: SimulationState, config: StepConfig) -> str:
    return encode({
        "type": UPDATE,
        "bodies": state.to_records(),
        "config": config_to_message(config),
    })


def result_message(result: StepResult) -> str:
    return encode({
        "type": RESULT,
        "bodies": result.state.to_records(),
        "stats": {
            "time": result.stats.time,
            "ke": result.stats.ke,
            "pe": result.stats.pe,
            "total": result.stats.total,
            "bodyCount": result.stats.body_count,
        },
        "removedIndices": list(result.removed_indices),
    })


def result_from_message(message: Dict[str, Any]) -> StepResult:
    if message.get("type") != RESULT:
        raise ProtocolError(f"Expected {RESULT}, got {message.get('type')}")
    stats = message["stats"]
    return StepResult(
        state=SimulationState.from_records(message["bodies"]),
        stats=StepStats(
            time=stats["time"],
            ke=stats["ke"],
            pe=stats["pe"],
            total=stats["total"],
            body_count=stats.get("bodyCount", len(message["bodies"])),
        ),
        removed_indices=[int(i) for i in message.get("removedIndices", [])],
    )
