"""Preset scenario generators."""

from threebody_sim.presets.base import Preset
from threebody_sim.presets.figure8 import Figure8
from threebody_sim.presets.random_bodies import RandomChaos, random_body

PRESETS = {
    "figure8": Figure8,
    "chaos": RandomChaos,
}


def get_preset(name: str, seed: int = None) -> Preset:
    """Instantiate a preset by name."""
    key = name.lower()
    if key not in PRESETS:
        raise ValueError(f"Unknown preset: {name}. Available: {', '.join(sorted(PRESETS))}")
    return PRESETS[key](seed=seed)


__all__ = ["Preset", "Figure8", "RandomChaos", "random_body", "PRESETS", "get_preset"]
