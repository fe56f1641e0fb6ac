"""
Collision tests between the bird, the pipes and the screen.

Boundaries are inclusive: a bird whose hitbox ends exactly on a gap edge,
the ceiling or the ground is still safe.
"""

from typing import NamedTuple

from .config import DEFAULT_CONFIG


class ScreenBounds(NamedTuple):
    width: float
    height: float

    @classmethod
    def from_config(cls, config):
        return cls(config.screen_width, config.screen_height)


def hits_bounds(bird, bounds, config=DEFAULT_CONFIG):
    """True if the bird is above the ceiling or below the ground."""
    top = bird.y - config.bird_half_height
    bottom = bird.y + config.bird_half_height
    return top < 0.0 or bottom > bounds.height


def overlaps_pipe(bird, pipe, config=DEFAULT_CONFIG):
    """Horizontal overlap of the bird's hitbox with a pipe column."""
    left = bird.x - config.bird_half_width
    right = bird.x + config.bird_half_width
    return right > pipe.x and left < pipe.x + config.pipe_width


def hits_pipe(bird, pipe, config=DEFAULT_CONFIG):
    """True if the bird touches the solid part of `pipe`."""
    if not overlaps_pipe(bird, pipe, config):
        return False
    gap_top = pipe.gap_center - pipe.gap_height / 2.0
    gap_bottom = pipe.gap_center + pipe.gap_height / 2.0
    top = bird.y - config.bird_half_height
    bottom = bird.y + config.bird_half_height
    return top < gap_top or bottom > gap_bottom


def check(bird, pipes, bounds, config=DEFAULT_CONFIG):
    """Ground/ceiling first, then every pipe in order. Stops at the first hit."""
    if hits_bounds(bird, bounds, config):
        return True
    return any(hits_pipe(bird, pipe, config) for pipe in pipes)
