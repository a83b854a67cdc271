"""Utility functions for reproducibility and configuration."""

from threebody_sim.utils.reproducibility import set_all_seeds
from threebody_sim.utils.config import load_config, save_config, Config

__all__ = ["set_all_seeds", "load_config", "save_config", "Config"]
