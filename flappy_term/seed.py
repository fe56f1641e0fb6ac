"""Session seed: an explicit override from the environment or the clock."""

import logging
import os
import time

from .config import SEED_ENV

logger = logging.getLogger(__name__)

SEED_MASK = (1 << 64) - 1


def parse_seed(value):
    """Return `value` as an unsigned 64-bit int, or None if it isn't one."""
    if value is None:
        return None
    text = value.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    seed = int(text)
    if seed > SEED_MASK:
        return None
    return seed


def get_seed(environ=None, clock=None):
    """
    Seed for this session.

    `FLAPPY_SEED` wins when it parses as an unsigned 64-bit integer;
    anything else falls back to the wall clock. Never raises.
    """
    environ = os.environ if environ is None else environ
    clock = time.time_ns if clock is None else clock

    raw = environ.get(SEED_ENV)
    seed = parse_seed(raw)
    if seed is not None:
        logger.debug("using %s=%d", SEED_ENV, seed)
        return seed

    if raw is not None:
        logger.debug("ignoring malformed %s=%r", SEED_ENV, raw)
    return clock() & SEED_MASK
