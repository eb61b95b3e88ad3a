from __future__ import annotations

"""Randomness helpers for question selection and seeding."""

import os
import random
from typing import Optional

import numpy as np


def seed_if_needed() -> Optional[int]:
    """Seed RNGs if SEED env var is set; returns the seed used."""
    seed = os.environ.get("SEED")
    if seed is None:
        return None
    try:
        s = int(seed)
    except ValueError:
        return None
    random.seed(s)
    np.random.seed(s)
    return s


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Dedicated RNG for one quiz session; seeded from SEED when not given."""
    if seed is None:
        env = os.environ.get("SEED")
        if env is not None:
            try:
                seed = int(env)
            except ValueError:
                seed = None
    return random.Random(seed)
