import curses
import unittest
from unittest.mock import patch

from flappy_term.errors import TerminalUnavailableError
from flappy_term.game import InputEvent, InputKind
from flappy_term.terminal import Terminal, key_to_event, open_terminal


class FakeScreen:
    def __init__(self, keys, size=(24, 80)):
        self.keys = list(keys)
        self.size = size

    def getch(self):
        return self.keys.pop(0) if self.keys else -1

    def getmaxyx(self):
        return self.size


class TestKeyMapping(unittest.TestCase):

    def test_flap_keys(self):
        for key in (ord(" "), curses.KEY_UP, curses.KEY_ENTER, 10, 13):
            self.assertEqual(key_to_event(key, 3), InputEvent(InputKind.FLAP, 3))

    def test_quit_keys(self):
        for key in (ord("q"), ord("Q"), 27):
            self.assertEqual(key_to_event(key, 0), InputEvent(InputKind.QUIT, 0))

    def test_other_keys_are_ignored(self):
        self.assertIsNone(key_to_event(ord("x"), 0))
        self.assertIsNone(key_to_event(curses.KEY_DOWN, 0))


class TestTerminal(unittest.TestCase):

    def test_poll_drains_keys_in_order(self):
        screen = FakeScreen([ord(" "), curses.KEY_RESIZE, ord("x"), ord("q"), -1, ord(" ")])
        events, resized = Terminal(screen).poll()
        self.assertEqual(events, [InputEvent(InputKind.FLAP, 0), InputEvent(InputKind.QUIT, 1)])
        self.assertTrue(resized)
        # The key after the first -1 waits for the next frame
        self.assertEqual(Terminal(screen).poll(), ([InputEvent(InputKind.FLAP, 0)], False))

    def test_pixel_size_doubles_rows(self):
        self.assertEqual(Terminal(FakeScreen([], size=(24, 80))).pixel_size(), (80, 48))


class TestOpenTerminal(unittest.TestCase):

    def setUp(self):
        patcher = patch("flappy_term.terminal.curses")
        self.curses = patcher.start()
        self.addCleanup(patcher.stop)
        self.curses.error = curses.error
        self.curses.has_colors.return_value = False
        self.screen = self.curses.initscr.return_value

    def test_yields_a_terminal_and_restores_the_screen(self):
        self.screen.getmaxyx.return_value = (24, 80)
        with open_terminal() as terminal:
            self.assertEqual(terminal.pixel_size(), (80, 48))
            self.curses.endwin.assert_not_called()
        self.screen.nodelay.assert_called_once_with(True)
        self.curses.endwin.assert_called_once_with()

    def test_zero_sized_terminal_is_refused(self):
        self.screen.getmaxyx.return_value = (0, 0)
        with self.assertRaisesRegex(TerminalUnavailableError, "no size"):
            with open_terminal():
                self.fail("entered a terminal with no size")
        self.curses.endwin.assert_called_once_with()

    def test_initscr_failure_is_reported(self):
        self.curses.initscr.side_effect = curses.error("setupterm: could not find terminal")
        with self.assertRaises(TerminalUnavailableError):
            with open_terminal():
                pass
        self.curses.endwin.assert_not_called()


if __name__ == "__main__":
    unittest.main()
