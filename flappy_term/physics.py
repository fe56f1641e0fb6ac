"""Bird physics."""

from dataclasses import dataclass, replace

from .config import DEFAULT_CONFIG


@dataclass(frozen=True)
class Bird:
    """The player. Immutable: every physics step returns a new bird."""

    x: float
    y: float
    velocity: float = 0.0
    alive: bool = True


def step(bird, dt, flapped, config=DEFAULT_CONFIG):
    """
    Advance `bird` by `dt` seconds.

    Gravity accelerates the bird downward; a flap overwrites the velocity
    with the flap impulse instead of adding to it, so mashing the key
    doesn't stack impulses. Descent speed is capped at the terminal
    velocity. Dead birds don't move.
    """
    if not bird.alive:
        return bird

    velocity = bird.velocity + config.gravity * dt
    if flapped:
        velocity = config.flap_impulse
    velocity = min(velocity, config.terminal_velocity)

    return replace(bird, y=bird.y + velocity * dt, velocity=velocity)
