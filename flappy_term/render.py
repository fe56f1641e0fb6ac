"""
Half-block pixel renderer.

The world is painted into a `PixelBuffer` of palette indices, two pixel
rows per terminal row, then written to curses as `▀` cells whose
foreground is the upper pixel and background the lower one.
"""

import contextlib
import curses
import logging
import math
from enum import IntEnum

import numpy as np

from .config import BASE_PIXEL_HEIGHT
from .game import Phase

logger = logging.getLogger(__name__)

UPPER_HALF = "▀"
LOWER_HALF = "▄"
FULL_BLOCK = "█"

GAME_OVER_DELAY = 15  # ticks before the score panel shows up


class Color(IntEnum):
    SKY_0 = 0
    SKY_1 = 1
    SKY_2 = 2
    SKY_3 = 3
    HILL_FAR = 4
    HILL_NEAR = 5
    GRASS = 6
    GRASS_LIGHT = 7
    DIRT = 8
    DIRT_DARK = 9
    PIPE_L = 10
    PIPE_M = 11
    PIPE_R = 12
    PIPE_HI = 13
    CAP_DARK = 14
    BIRD_Y = 15
    BIRD_HI = 16
    BIRD_WING = 17
    WHITE = 18
    BIRD_PUPIL = 19
    BIRD_BEAK = 20
    BIRD_BEAK_HI = 21
    SHADOW = 22
    PANEL_LIGHT = 23


def _lerp(a, b, t):
    return tuple(int(x + (y - x) * t) for x, y in zip(a, b))


_SKY_TOP = (70, 180, 200)
_SKY_BOTTOM = (190, 232, 245)

RGB = {
    Color.SKY_0: _SKY_TOP,
    Color.SKY_1: _lerp(_SKY_TOP, _SKY_BOTTOM, 1 / 3),
    Color.SKY_2: _lerp(_SKY_TOP, _SKY_BOTTOM, 2 / 3),
    Color.SKY_3: _SKY_BOTTOM,
    Color.HILL_FAR: (120, 195, 75),
    Color.HILL_NEAR: (95, 175, 55),
    Color.GRASS: (84, 168, 55),
    Color.GRASS_LIGHT: (110, 200, 70),
    Color.DIRT: (210, 185, 110),
    Color.DIRT_DARK: (185, 160, 90),
    Color.PIPE_L: (74, 122, 26),
    Color.PIPE_M: (100, 170, 40),
    Color.PIPE_R: (115, 191, 46),
    Color.PIPE_HI: (145, 215, 62),
    Color.CAP_DARK: (60, 100, 20),
    Color.BIRD_Y: (245, 200, 66),
    Color.BIRD_HI: (255, 225, 100),
    Color.BIRD_WING: (215, 165, 35),
    Color.WHITE: (255, 255, 255),
    Color.BIRD_PUPIL: (20, 20, 20),
    Color.BIRD_BEAK: (225, 75, 35),
    Color.BIRD_BEAK_HI: (240, 110, 50),
    Color.SHADOW: (30, 30, 30),
    Color.PANEL_LIGHT: (220, 195, 120),
}

# Every color has a half-brightness twin at index + DARK for overlays
DARK = len(Color)
PALETTE = [RGB[c] for c in Color] + [tuple(v // 2 for v in RGB[c]) for c in Color]

SKY = (Color.SKY_0, Color.SKY_1, Color.SKY_2, Color.SKY_3)
SKY_INDICES = frozenset(int(c) for c in SKY) | frozenset(int(c) + DARK for c in SKY)

_PIPE_STOPS = (
    (0.25, Color.PIPE_L),
    (0.40, Color.PIPE_M),
    (0.62, Color.PIPE_HI),
    (0.85, Color.PIPE_R),
)

# 3x5 bitmap font
DIGITS = (
    ("###", "#.#", "#.#", "#.#", "###"),
    (".#.", "##.", ".#.", ".#.", "###"),
    ("###", "..#", "###", "#..", "###"),
    ("###", "..#", ".##", "..#", "###"),
    ("#.#", "#.#", "###", "..#", "..#"),
    ("###", "#..", "###", "..#", "###"),
    ("###", "#..", "###", "#.#", "###"),
    ("###", "..#", ".#.", ".#.", ".#."),
    ("###", "#.#", "###", "#.#", "###"),
    ("###", "#.#", "###", "..#", "###"),
)

LETTERS = {
    "A": (".#.", "#.#", "#.#", "###", "#.#"),
    "B": ("##.", "#.#", "##.", "#.#", "##."),
    "C": (".#.", "#.#", "#..", "#.#", ".#."),
    "E": ("###", "#..", "##.", "#..", "###"),
    "F": ("###", "#..", "###", "#..", "#.."),
    "L": ("#..", "#..", "#..", "#..", "###"),
    "O": (".#.", "#.#", "#.#", "#.#", ".#."),
    "P": ("##.", "#.#", "##.", "#..", "#.."),
    "S": (".##", "#..", ".#.", "..#", "##."),
    "T": ("###", ".#.", ".#.", ".#.", ".#."),
    "Y": ("#.#", "#.#", ".#.", ".#.", ".#."),
    " ": ("...", "...", "...", "...", "..."),
}

GLYPH_ADVANCE = 4


class PixelBuffer:
    """A grid of palette indices with clipped drawing primitives."""

    def __init__(self, width, height):
        self.px = np.full((max(height, 0), max(width, 0)), Color.SKY_0, dtype=np.uint8)

    @property
    def width(self):
        return self.px.shape[1]

    @property
    def height(self):
        return self.px.shape[0]

    def resize(self, width, height):
        self.px = np.full((max(height, 0), max(width, 0)), Color.SKY_0, dtype=np.uint8)

    def set(self, x, y, color):
        if 0 <= x < self.width and 0 <= y < self.height:
            self.px[y, x] = color

    def get(self, x, y):
        return int(self.px[y, x])

    def fill_rect(self, x, y, w, h, color):
        x0, y0 = max(x, 0), max(y, 0)
        x1, y1 = min(x + w, self.width), min(y + h, self.height)
        if x0 < x1 and y0 < y1:
            self.px[y0:y1, x0:x1] = color

    def darken(self):
        """Swap every pixel to its half-brightness twin."""
        bright = self.px < DARK
        self.px[bright] += DARK


def pipe_shade(x, total_w):
    """Column color giving the pipe a rounded, lit-from-the-left look."""
    if total_w <= 1:
        return Color.PIPE_M
    t = x / (total_w - 1)
    for stop, color in _PIPE_STOPS:
        if t < stop:
            return color
    return Color.PIPE_L


def text_width(text, scale=1):
    if not text:
        return 0
    return (len(text) * GLYPH_ADVANCE - 1) * scale


def draw_glyph(buf, x, y, rows, color, scale=1, shadow=None):
    for r, line in enumerate(rows):
        for c, bit in enumerate(line):
            if bit != "#":
                continue
            px, py = x + c * scale, y + r * scale
            if shadow is not None:
                buf.fill_rect(px + 1, py + 1, scale, scale, shadow)
            buf.fill_rect(px, py, scale, scale, color)


def draw_text(buf, x, y, text, color, scale=1):
    for i, ch in enumerate(text.upper()):
        glyph = LETTERS.get(ch, LETTERS[" "])
        draw_glyph(buf, x + i * GLYPH_ADVANCE * scale, y, glyph, color, scale)


def draw_number(buf, cx, y, n, color):
    """Draw `n` centered on `cx` with a drop shadow."""
    digits = str(n)
    start = cx - text_width(digits) // 2
    for i, ch in enumerate(digits):
        draw_glyph(buf, start + i * GLYPH_ADVANCE, y, DIGITS[int(ch)], color, shadow=Color.SHADOW)


# --- scene --------------------------------------------------------------


def _draw_sky(buf, sky_h):
    sky_h = min(sky_h, buf.height)
    if sky_h <= 0:
        return
    bands = np.arange(sky_h) * len(SKY) // sky_h
    buf.px[:sky_h, :] = np.asarray(SKY, dtype=np.uint8)[bands][:, None]


def _draw_hills(buf, sky_h, offset, scale):
    xs = np.arange(buf.width)
    ys = np.arange(buf.height)[:, None]
    # color, parallax, frequency, amplitude, harmonic, harmonic amplitude, lift
    layers = (
        (Color.HILL_FAR, 0.2, 0.04, 6.0, 1.7, 3.0, 4.0),
        (Color.HILL_NEAR, 0.4, 0.06, 4.0, 2.3, 2.0, 2.0),
    )
    for color, parallax, freq, amp, harmonic, amp2, lift in layers:
        fx = (xs + offset * parallax) * freq
        h = (np.sin(fx) * amp + np.sin(fx * harmonic) * amp2) * scale
        top = sky_h - h.astype(int) - int(lift * scale)
        buf.px[(ys >= top[None, :]) & (ys < sky_h)] = color


def _draw_ground(buf, sky_h, offset):
    if sky_h >= buf.height:
        return
    xs = np.arange(buf.width)
    alt = ((xs + offset).astype(int) // 3) % 2 == 0
    buf.px[sky_h, :] = np.where(alt, Color.GRASS, Color.GRASS_LIGHT)
    if sky_h + 1 < buf.height:
        buf.px[sky_h + 1, :] = Color.GRASS
    if sky_h + 2 < buf.height:
        ys = np.arange(sky_h + 2, buf.height)[:, None]
        shifted = (xs + offset * 0.8).astype(int)[None, :]
        stripe = (shifted + (ys - sky_h) * 2) % 12 < 6
        buf.px[sky_h + 2:, :] = np.where(stripe, Color.DIRT, Color.DIRT_DARK)


def _draw_pipe(buf, pipe, config, sky_h, scale):
    cap_extra = max(int(2 * scale), 1)
    cap_h = max(int(3 * scale), 2)
    pw = int(config.pipe_width)
    px = int(math.floor(pipe.x))
    gap_top = int(pipe.gap_top)
    gap_bot = int(pipe.gap_bottom)

    for i in range(pw):
        color = pipe_shade(i, pw)
        buf.fill_rect(px + i, 0, 1, gap_top - cap_h, color)
        buf.fill_rect(px + i, gap_bot + cap_h, 1, sky_h - gap_bot - cap_h, color)

    cap_w = pw + cap_extra * 2
    cap_x = px - cap_extra
    for i in range(cap_w):
        color = pipe_shade(i, cap_w)
        buf.fill_rect(cap_x + i, gap_top - cap_h, 1, cap_h, color)
        buf.fill_rect(cap_x + i, gap_bot, 1, cap_h, color)

    # Cap rims
    for y in (gap_top - cap_h, gap_top - 1, gap_bot, gap_bot + cap_h - 1):
        buf.fill_rect(cap_x, y, cap_w, 1, Color.CAP_DARK)


def _draw_bird(buf, bird, frame, scale):
    cx, cy = int(bird.x), int(bird.y)
    s = scale
    tilt = int(max(-1.0, min(1.0, bird.velocity / (90.0 * s))))

    # Body: rectangle with chamfered corners
    bw = max(int(3 * s), 2)
    bh = max(int(2 * s), 2)
    total_h = bh * 2
    corner = max(int(s), 1)
    top = cy - bh
    for row in range(total_h):
        if row < corner:
            inset = corner - row
        elif row >= total_h - corner:
            inset = row - (total_h - corner) + 1
        else:
            inset = 0
        half = bw - inset
        if half > 0:
            buf.fill_rect(cx - half, top + row, half * 2 + 1, 1, Color.BIRD_Y)

    hi_rows = max(1, int(s * 0.8))
    for row in range(1, min(1 + hi_rows, total_h // 2)):
        inset = corner - row if row < corner else 0
        half = bw - inset - 1
        if half > 0:
            buf.fill_rect(cx - half, top + row, half * 2 + 1, 1, Color.BIRD_HI)

    wing_dy = -1 if frame % 8 < 4 else 1
    wing_h = max(int(1.5 * s), 1)
    wing_w = max(int(2 * s), 1)
    buf.fill_rect(cx - bw + 1, cy + wing_dy + tilt, wing_w, wing_h, Color.BIRD_WING)

    ex = cx + bw - int(1.5 * s)
    ey = top + max(int(s), 1)
    eye_r = max(int(0.8 * s), 1)
    buf.fill_rect(ex, ey, eye_r + 1, eye_r + 1, Color.WHITE)
    buf.set(ex + eye_r, ey + eye_r, Color.BIRD_PUPIL)

    # Beak: a triangle pointing right, widest at its middle row
    beak_w = max(int(2.5 * s), 2)
    beak_half = max(int(0.75 * s), 1)
    beak_top = cy + tilt - beak_half
    for row in range(beak_half * 2 + 1):
        frac = 1.0 - abs(row - beak_half) / (beak_half + 1)
        w = max(int(frac * beak_w), 1)
        color = Color.BIRD_BEAK_HI if row <= beak_half else Color.BIRD_BEAK
        buf.fill_rect(cx + bw, beak_top + row, w, 1, color)

    tail_w = max(int(1.5 * s), 1)
    buf.fill_rect(cx - bw - tail_w, cy - 1 + tilt, tail_w, 2, Color.BIRD_WING)


def _draw_title(buf):
    cx = buf.width // 2
    cy = buf.height // 3
    title = "FLAPPY"
    scale = 2 if text_width(title, 2) + 4 <= buf.width else 1
    x = cx - text_width(title, scale) // 2
    draw_text(buf, x + 2, cy + 2, title, Color.SHADOW, scale)
    draw_text(buf, x + 1, cy + 1, title, Color.BIRD_Y, scale)
    draw_text(buf, x, cy, title, Color.BIRD_HI, scale)

    msg = "SPACE TO FLAP"
    box_w = text_width(msg) + 4
    box_h = 7
    box_x = cx - box_w // 2
    box_y = cy + 5 * scale + 4
    buf.fill_rect(box_x - 1, box_y - 1, box_w + 2, box_h + 1, Color.SHADOW)
    buf.fill_rect(box_x, box_y, box_w, box_h - 1, Color.WHITE)
    draw_text(buf, box_x + 2, box_y + 1, msg, Color.BIRD_PUPIL)


def _draw_game_over(buf, snapshot, scale):
    buf.darken()
    cx = buf.width // 2
    cy = buf.height // 2
    panel_w = max(int(40 * scale), 30)
    panel_h = max(int(20 * scale), 16)
    px = cx - panel_w // 2
    py = cy - panel_h // 2
    buf.fill_rect(px - 1, py - 1, panel_w + 2, panel_h + 2, Color.SHADOW)
    buf.fill_rect(px, py, panel_w, panel_h, Color.DIRT)
    buf.fill_rect(px + 1, py + 1, panel_w - 2, panel_h - 2, Color.PANEL_LIGHT)
    draw_number(buf, cx, py + 4, snapshot.score, Color.WHITE)
    draw_number(buf, cx, py + 12, snapshot.best, Color.BIRD_Y)


def compose(buf, snapshot, config):
    """Paint one frame of `snapshot` into `buf`."""
    scale = config.pixel_height / BASE_PIXEL_HEIGHT
    sky_h = int(config.screen_height)

    _draw_sky(buf, sky_h)
    _draw_hills(buf, sky_h, snapshot.ground_offset, scale)
    for pipe in snapshot.pipes:
        _draw_pipe(buf, pipe, config, sky_h, scale)
    _draw_ground(buf, sky_h, snapshot.ground_offset)
    _draw_bird(buf, snapshot.bird, snapshot.frame, scale)
    draw_number(buf, buf.width // 2, 4, snapshot.score, Color.WHITE)

    if snapshot.phase is Phase.READY:
        _draw_title(buf)
    elif snapshot.phase is Phase.DEAD and snapshot.dead_ticks > GAME_OVER_DELAY:
        _draw_game_over(buf, snapshot, scale)


# --- terminal colors ----------------------------------------------------

_XTERM_LEVELS = (0, 95, 135, 175, 215, 255)

_BASIC_COLORS = (
    (curses.COLOR_BLACK, (0, 0, 0)),
    (curses.COLOR_RED, (205, 0, 0)),
    (curses.COLOR_GREEN, (0, 205, 0)),
    (curses.COLOR_YELLOW, (205, 205, 0)),
    (curses.COLOR_BLUE, (0, 0, 238)),
    (curses.COLOR_MAGENTA, (205, 0, 205)),
    (curses.COLOR_CYAN, (0, 205, 205)),
    (curses.COLOR_WHITE, (229, 229, 229)),
)


def _nearest_level(v):
    return min(range(len(_XTERM_LEVELS)), key=lambda i: abs(_XTERM_LEVELS[i] - v))


def xterm_index(rgb):
    """Closest entry of the xterm 6x6x6 color cube."""
    r, g, b = (_nearest_level(v) for v in rgb)
    return 16 + 36 * r + 6 * g + b


def basic_index(rgb):
    """Closest of the eight standard curses colors."""

    def distance(entry):
        return sum((a - b) ** 2 for a, b in zip(entry[1], rgb))

    return min(_BASIC_COLORS, key=distance)[0]


class Renderer:
    """Writes pixel buffers to a curses screen."""

    def __init__(self, stdscr):
        self.stdscr = stdscr
        self._pairs = {}
        self._cells = {}
        self._next_pair = 1
        self._pairs_exhausted = False
        self._colors = self._init_colors()

    def _init_colors(self):
        if not curses.has_colors():
            logger.info("no color support, drawing in monochrome")
            return None
        if curses.can_change_color() and curses.COLORS >= 16 + len(PALETTE):
            for i, (r, g, b) in enumerate(PALETTE):
                curses.init_color(16 + i, r * 1000 // 255, g * 1000 // 255, b * 1000 // 255)
            return [16 + i for i in range(len(PALETTE))]
        if curses.COLORS >= 256:
            return [xterm_index(rgb) for rgb in PALETTE]
        return [basic_index(rgb) for rgb in PALETTE]

    def _pair(self, fg, bg):
        key = (fg, bg)
        if key in self._pairs:
            return self._pairs[key]
        if self._next_pair >= curses.COLOR_PAIRS:
            if not self._pairs_exhausted:
                logger.warning("ran out of color pairs after %d", self._next_pair - 1)
                self._pairs_exhausted = True
            return 0
        curses.init_pair(self._next_pair, fg, bg)
        attr = curses.color_pair(self._next_pair)
        self._next_pair += 1
        self._pairs[key] = attr
        return attr

    def _cell(self, top, bottom):
        """Character and attribute for a cell showing two pixels."""
        key = (top, bottom)
        if key in self._cells:
            return self._cells[key]

        if self._colors is None:
            top_ink = top not in SKY_INDICES
            bottom_ink = bottom not in SKY_INDICES
            ch = {
                (False, False): " ",
                (True, False): UPPER_HALF,
                (False, True): LOWER_HALF,
                (True, True): FULL_BLOCK,
            }[(top_ink, bottom_ink)]
            cell = (ch, curses.A_NORMAL)
        else:
            fg, bg = self._colors[top], self._colors[bottom]
            if fg == bg:
                cell = (" ", self._pair(bg, bg))
            else:
                cell = (UPPER_HALF, self._pair(fg, bg))

        self._cells[key] = cell
        return cell

    def _put(self, row, col, text, attr):
        # The bottom-right cell can't be written without scrolling
        with contextlib.suppress(curses.error):
            self.stdscr.addstr(row, col, text, attr)

    def clear(self):
        self.stdscr.erase()

    def draw(self, buf):
        max_rows, max_cols = self.stdscr.getmaxyx()
        rows = min(buf.height // 2, max_rows)
        cols = min(buf.width, max_cols)
        for row in range(rows):
            top = buf.px[row * 2, :cols].tolist()
            bottom = buf.px[row * 2 + 1, :cols].tolist()
            start = 0
            run = []
            run_attr = None
            for col, pair in enumerate(zip(top, bottom)):
                ch, attr = self._cell(*pair)
                if run and attr != run_attr:
                    self._put(row, start, "".join(run), run_attr)
                    start, run = col, []
                run_attr = attr
                run.append(ch)
            if run:
                self._put(row, start, "".join(run), run_attr)
        self.stdscr.noutrefresh()
        curses.doupdate()
