"""
Procedural pipe layout.

Every pipe is addressed by its index: `pipe_at(seed, index)` seeds its own
numpy generator from the pair, so any pipe can be regenerated at any time
without replaying the ones before it.
"""

import itertools
from typing import NamedTuple

import numpy as np

from .config import DEFAULT_CONFIG


class PipeLayout(NamedTuple):
    gap_center: float
    gap_height: float


def pipe_at(seed, index, config=DEFAULT_CONFIG):
    """Gap of pipe number `index` for the session `seed`. Pure."""
    rng = np.random.default_rng([int(seed), int(index)])
    u_height, u_center = rng.random(2)

    gap_height = config.min_gap + u_height * (config.max_gap - config.min_gap)

    low = config.min_margin
    high = max(config.screen_height - config.min_margin, low)
    gap_center = low + u_center * (high - low)

    return PipeLayout(float(gap_center), float(gap_height))


def iter_pipes(seed, config=DEFAULT_CONFIG, start=0):
    """Endless lazy sequence of layouts from `start` on; restart by calling again."""
    for index in itertools.count(start):
        yield pipe_at(seed, index, config)
