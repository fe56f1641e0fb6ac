"""Terminal front end: wires the game to curses, the mixer and the clock."""

import argparse
import logging
import os
import sys
import time

from . import __version__
from .audio import audio_wanted, open_audio
from .config import FPS, LOG_ENV, MAX_FRAME_DT, SEED_ENV, GameConfig
from .errors import FlappyError
from .game import Game, InputEvent, InputKind
from .log import setup_logging
from .render import PixelBuffer, Renderer, compose
from .seed import get_seed
from .terminal import open_terminal

logger = logging.getLogger(__name__)

FRAME_DT = 1 / FPS


def play(terminal, audio, seed, pilot=None, clock=time.perf_counter, sleep=time.sleep):
    """
    Run the game loop until a quit key; returns the session best.

    `pilot(snapshot, config)`, when given, is asked every frame whether to
    flap, on top of whatever the keyboard says.
    """
    config = GameConfig.for_screen(*terminal.pixel_size())
    game = Game(config, seed)
    renderer = Renderer(terminal.stdscr)
    buf = PixelBuffer(int(config.screen_width), int(config.pixel_height))
    snapshot = game.snapshot()
    last = clock()

    while True:
        frame_start = clock()

        events, resized = terminal.poll()
        if any(event.kind is InputKind.QUIT for event in events):
            break

        if resized:
            config = GameConfig.for_screen(*terminal.pixel_size())
            game.resize(config)
            buf.resize(int(config.screen_width), int(config.pixel_height))
            renderer.clear()
            logger.info("resized to %dx%d px", config.screen_width, config.pixel_height)

        if pilot is not None and pilot(snapshot, config):
            events.append(InputEvent(InputKind.FLAP, len(events)))

        dt = min(frame_start - last, MAX_FRAME_DT)
        last = frame_start
        snapshot = game.tick(dt, events)
        audio.emit(game.drain_triggers())

        compose(buf, snapshot, config)
        renderer.draw(buf)

        # Frame pacing
        elapsed = clock() - frame_start
        if elapsed < FRAME_DT:
            sleep(FRAME_DT - elapsed)

    return game.best


def run_session(seed, pilot=None):
    """Acquire audio and terminal, play, release both. Returns the best score."""
    with open_audio(audio_wanted()) as audio, open_terminal() as terminal:
        return play(terminal, audio, seed, pilot=pilot)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="flappy-term",
        description=(
            "Flappy Bird in your terminal. Space/Up/Enter flaps, q or Esc quits. "
            f"Set {SEED_ENV} to replay a pipe layout."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None):
    build_parser().parse_args(argv)
    setup_logging(os.environ.get(LOG_ENV))

    seed = get_seed()
    logger.info("session seed %d", seed)

    try:
        best = run_session(seed)
    except FlappyError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return exc.exit_code
    except KeyboardInterrupt:
        return 0

    print(f"[INFO] Best score: {best} ({SEED_ENV}={seed})")
    return 0
