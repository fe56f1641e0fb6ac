"""Terminal session and keyboard input."""

import contextlib
import curses
import locale
import logging
import os

from .errors import TerminalUnavailableError
from .game import InputEvent, InputKind

logger = logging.getLogger(__name__)

ESCAPE = 27
FLAP_KEYS = frozenset({ord(" "), curses.KEY_UP, curses.KEY_ENTER, 10, 13})
QUIT_KEYS = frozenset({ord("q"), ord("Q"), ESCAPE})


def key_to_event(key, seq):
    """Map a curses key code to an input event, or None for other keys."""
    if key in FLAP_KEYS:
        return InputEvent(InputKind.FLAP, seq)
    if key in QUIT_KEYS:
        return InputEvent(InputKind.QUIT, seq)
    return None


class Terminal:
    """A curses screen in non-blocking raw mode."""

    def __init__(self, stdscr):
        self.stdscr = stdscr

    def pixel_size(self):
        """(width, height) in pixels: two pixels per character row."""
        rows, cols = self.stdscr.getmaxyx()
        return cols, rows * 2

    def poll(self):
        """
        Drain pending keys without blocking.

        Returns the input events in arrival order and whether the terminal
        was resized since the last poll.
        """
        events = []
        resized = False
        while True:
            key = self.stdscr.getch()
            if key == -1:
                break
            if key == curses.KEY_RESIZE:
                resized = True
                continue
            event = key_to_event(key, len(events))
            if event is not None:
                events.append(event)
        return events, resized


@contextlib.contextmanager
def open_terminal():
    """
    Own the terminal for the duration of the block.

    The screen is restored on every way out, exceptions included.
    """
    # Half-block glyphs need the user's UTF-8 locale; a broken LANG falls back to C
    with contextlib.suppress(locale.Error):
        locale.setlocale(locale.LC_ALL, "")
    # Make a lone ESC register as quit without the default 1s wait
    os.environ.setdefault("ESCDELAY", "25")
    try:
        stdscr = curses.initscr()
    except curses.error as exc:
        raise TerminalUnavailableError(f"cannot initialise the terminal: {exc}") from exc

    try:
        try:
            curses.noecho()
            curses.cbreak()
            stdscr.keypad(True)
            stdscr.nodelay(True)
            if curses.has_colors():
                curses.start_color()
        except curses.error as exc:
            raise TerminalUnavailableError(f"cannot enter raw mode: {exc}") from exc

        # Not every terminal can hide its cursor
        with contextlib.suppress(curses.error):
            curses.curs_set(0)

        rows, cols = stdscr.getmaxyx()
        if rows < 1 or cols < 1:
            raise TerminalUnavailableError(f"terminal has no size ({cols}x{rows})")
        logger.info("terminal %dx%d, %d colors", cols, rows, curses.COLORS if curses.has_colors() else 0)
        yield Terminal(stdscr)
    finally:
        stdscr.keypad(False)
        curses.nocbreak()
        curses.echo()
        curses.endwin()
