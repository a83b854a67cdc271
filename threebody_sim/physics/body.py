"""Body records, array snapshots and the canonical Body Store."""

import itertools
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence

import numpy as np

DEFAULT_COLOR = 0xFFFFFF


@dataclass
class Body:
    """One point mass. ``color`` is a renderer tag carried through untouched."""
    id: int
    position: np.ndarray
    velocity: np.ndarray
    mass: float
    color: int = DEFAULT_COLOR

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=np.float64).reshape(3)
        self.velocity = np.asarray(self.velocity, dtype=np.float64).reshape(3)
        self.mass = float(self.mass)
        if not self.mass > 0:
            raise ValueError(f"Body mass must be > 0, got {self.mass}")

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.velocity))

    def to_dict(self) -> dict:
        """Flat ``{x, y, z, vx, vy, vz, mass, color}`` record used on the wire and on disk."""
        x, y, z = (float(c) for c in self.position)
        vx, vy, vz = (float(c) for c in self.velocity)
        return {
            "x": x, "y": y, "z": z,
            "vx": vx, "vy": vy, "vz": vz,
            "mass": self.mass,
            "color": self.color,
        }


@dataclass
class SimulationState:
    """Ordered array view of the bodies for the duration of one step.

    Row ``i`` of every array describes the same body. Indices are only
    meaningful until the next step commits.
    """
    positions: np.ndarray
    velocities: np.ndarray
    masses: np.ndarray
    colors: List[int] = field(default_factory=list)

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=np.float64).reshape(-1, 3)
        self.velocities = np.asarray(self.velocities, dtype=np.float64).reshape(-1, 3)
        self.masses = np.asarray(self.masses, dtype=np.float64).reshape(-1)
        n = self.masses.shape[0]
        if self.positions.shape[0] != n or self.velocities.shape[0] != n:
            raise ValueError("positions, velocities and masses must have the same length")
        if not self.colors:
            self.colors = [DEFAULT_COLOR] * n
        elif len(self.colors) != n:
            raise ValueError("colors must have one entry per body")

    @property
    def n_bodies(self) -> int:
        return int(self.masses.shape[0])

    def __len__(self) -> int:
        return self.n_bodies

    def copy(self) -> "SimulationState":
        return SimulationState(
            self.positions.copy(),
            self.velocities.copy(),
            self.masses.copy(),
            list(self.colors),
        )

    def remove(self, index: int) -> None:
        """Delete one row from every array."""
        self.positions = np.delete(self.positions, index, axis=0)
        self.velocities = np.delete(self.velocities, index, axis=0)
        self.masses = np.delete(self.masses, index)
        del self.colors[index]

    def to_records(self) -> List[dict]:
        return [
            {
                "x": float(p[0]), "y": float(p[1]), "z": float(p[2]),
                "vx": float(v[0]), "vy": float(v[1]), "vz": float(v[2]),
                "mass": float(m),
                "color": c,
            }
            for p, v, m, c in zip(self.positions, self.velocities, self.masses, self.colors)
        ]

    @classmethod
    def from_records(cls, records: Sequence[dict]) -> "SimulationState":
        """Build a state from flat ``{x, y, z, vx, vy, vz, mass, color}`` dicts."""
        positions = [[r["x"], r["y"], r["z"]] for r in records]
        velocities = [[r["vx"], r["vy"], r["vz"]] for r in records]
        masses = [r["mass"] for r in records]
        colors = [r.get("color", DEFAULT_COLOR) for r in records]
        return cls(
            np.array(positions, dtype=np.float64).reshape(-1, 3),
            np.array(velocities, dtype=np.float64).reshape(-1, 3),
            np.array(masses, dtype=np.float64),
            colors,
        )


class BodyStore:
    """Canonical, ordered collection of live bodies.

    Every body gets an opaque integer id that survives merges and deletions of
    other bodies; ``index_of`` translates an id to its current array index.
    """

    def __init__(self):
        self._bodies: List[Body] = []
        self._index: Dict[int, int] = {}
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._bodies)

    def __iter__(self) -> Iterator[Body]:
        return iter(self._bodies)

    def __contains__(self, body_id: int) -> bool:
        return body_id in self._index

    @property
    def ids(self) -> List[int]:
        return [b.id for b in self._bodies]

    def _reindex(self):
        self._index = {b.id: i for i, b in enumerate(self._bodies)}

    def add(self, position, velocity, mass: float, color: int = DEFAULT_COLOR) -> int:
        """Append a body and return its id."""
        body = Body(next(self._ids), position, velocity, mass, color)
        self._bodies.append(body)
        self._index[body.id] = len(self._bodies) - 1
        return body.id

    def add_record(self, record: dict) -> int:
        return self.add(
            (record["x"], record["y"], record["z"]),
            (record["vx"], record["vy"], record["vz"]),
            record["mass"],
            record.get("color", DEFAULT_COLOR),
        )

    def remove(self, body_id: int) -> int:
        """Remove a body by id and return the index it occupied."""
        index = self.index_of(body_id)
        if index is None:
            raise KeyError(f"No body with id {body_id}")
        del self._bodies[index]
        self._reindex()
        return index

    def clear(self) -> None:
        self._bodies = []
        self._index = {}

    def replace(self, records: Sequence[dict]) -> List[int]:
        """Drop every body and load ``records`` in order (ids are fresh)."""
        self.clear()
        return [self.add_record(r) for r in records]

    def get(self, body_id: int) -> Body:
        index = self.index_of(body_id)
        if index is None:
            raise KeyError(f"No body with id {body_id}")
        return self._bodies[index]

    def index_of(self, body_id: Optional[int]) -> Optional[int]:
        if body_id is None:
            return None
        return self._index.get(body_id)

    def id_at(self, index: int) -> int:
        return self._bodies[index].id

    def snapshot(self) -> SimulationState:
        """Copy the live bodies into a fresh array state."""
        n = len(self._bodies)
        if n == 0:
            return SimulationState(np.zeros((0, 3)), np.zeros((0, 3)), np.zeros(0), [])
        return SimulationState(
            np.array([b.position for b in self._bodies]),
            np.array([b.velocity for b in self._bodies]),
            np.array([b.mass for b in self._bodies]),
            [b.color for b in self._bodies],
        )

    def commit(self, state: SimulationState, removed_indices: Sequence[int] = ()) -> List[int]:
        """Apply a finished step.

        ``removed_indices`` refer to the snapshot the step started from and are
        applied in descending order; the remaining bodies then take the rows of
        ``state`` in order. Returns the ids of the removed bodies.
        """
        removed_ids = []
        for index in sorted(set(removed_indices), reverse=True):
            removed_ids.append(self._bodies[index].id)
            del self._bodies[index]
        if len(self._bodies) != state.n_bodies:
            raise RuntimeError(
                f"Step result has {state.n_bodies} bodies but the store holds {len(self._bodies)}"
            )
        for body, pos, vel, mass, color in zip(
            self._bodies, state.positions, state.velocities, state.masses, state.colors
        ):
            body.position = np.array(pos, dtype=np.float64)
            body.velocity = np.array(vel, dtype=np.float64)
            body.mass = float(mass)
            body.color = color
        self._reindex()
        return removed_ids

    def to_records(self) -> List[dict]:
        return [b.to_dict() for b in self._bodies]
