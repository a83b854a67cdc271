"""Figure-8 periodic three-body orbit."""

from typing import List

from threebody_sim.presets.base import Preset, make_body

FIGURE8_POSITION = (0.97000436, -0.24308753, 0.0)
FIGURE8_VELOCITY = (0.4662036850, 0.4323657300, 0.0)


class Figure8(Preset):
    """Three equal masses chasing each other along a figure-eight loop (z = 0)."""

    gravity_g = 1.0

    @property
    def name(self) -> str:
        return "figure8"

    def generate(self) -> List[dict]:
        x, y, _ = FIGURE8_POSITION
        vx, vy, _ = FIGURE8_VELOCITY
        return [
            make_body((x, y, 0.0), (vx, vy, 0.0), 1.0, 0x3B82F6),
            make_body((-x, -y, 0.0), (vx, vy, 0.0), 1.0, 0xEF4444),
            make_body((0.0, 0.0, 0.0), (-2 * vx, -2 * vy, 0.0), 1.0, 0x22C55E),
        ]
