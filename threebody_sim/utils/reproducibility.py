"""Seeding for reproducible scenario generation."""

import random

import numpy as np


def set_all_seeds(seed: int) -> np.random.Generator:
    """Seed Python's and NumPy's global generators.

    Physics steps are deterministic; only body generation draws random
    numbers, so array backends need no seeding.

    Returns:
        A NumPy Generator seeded with ``seed`` for callers that draw their own
        random bodies.
    """
    random.seed(seed)
    np.random.seed(seed)
    return np.random.default_rng(seed)
