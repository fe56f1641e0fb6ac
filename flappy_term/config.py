"""
Tuning constants for the terminal Flappy Bird.

All distances are in pixels (one terminal cell is one pixel wide and two
pixels tall), all times in seconds, y grows downward.
"""

from dataclasses import dataclass

FPS = 30
MAX_FRAME_DT = 3 / FPS  # never simulate more than 3 frames after a stall

SEED_ENV = "FLAPPY_SEED"
AUDIO_ENV = "FLAPPY_AUDIO"
LOG_ENV = "FLAPPY_LOG"

SAMPLE_RATE = 44100

# Reference screen the default tuning is made for (80x24 cells)
BASE_PIXEL_HEIGHT = 48.0
BASE_PIXEL_WIDTH = 80.0


@dataclass(frozen=True)
class GameConfig:
    """Geometry and physics of one game session."""

    screen_width: float = 80.0
    screen_height: float = 40.0  # playable sky, the ground starts here
    ground_height: float = 8.0

    # Bird
    bird_x: float = 17.6
    bird_start_y: float = 16.0
    bird_half_width: float = 2.0
    bird_half_height: float = 1.5

    # Physics (px/s and px/s^2)
    gravity: float = 180.0
    flap_impulse: float = -60.0
    terminal_velocity: float = 100.0
    max_step: float = 1 / FPS

    # Pipes
    pipe_width: float = 8.0
    pipe_speed: float = 33.0
    pipe_spacing: float = 33.6
    min_gap: float = 13.0
    max_gap: float = 17.0
    min_margin: float = 11.9
    retire_margin: float = 5.0

    # Implicit difficulty: speed grows with score up to a cap
    speed_ramp: float = 0.02
    max_speed_factor: float = 1.6

    # Idle animation on the title screen
    bob_amplitude: float = 3.0
    bob_rate: float = 2.4
    idle_scroll_speed: float = 15.0

    # Ticks a dead bird ignores flaps, so a held key can't skip the score panel
    restart_delay: int = 20

    @property
    def spawn_x(self):
        """Where new pipes enter, just past the right edge."""
        return self.screen_width + 2.0

    @property
    def spawn_threshold(self):
        """A new pipe spawns once the rightmost one is left of this."""
        return self.screen_width - self.pipe_spacing

    @property
    def pixel_height(self):
        return self.screen_height + self.ground_height

    def speed_for_score(self, score):
        """Pipe speed after `score` points."""
        factor = min(1.0 + score * self.speed_ramp, self.max_speed_factor)
        return self.pipe_speed * factor

    @classmethod
    def for_screen(cls, pixel_width, pixel_height):
        """
        Derive a config for a terminal of the given pixel size.

        Everything vertical scales with the pixel height, horizontal speed
        and spacing with the width, so small and large terminals play alike.
        """
        pw = float(max(pixel_width, 1))
        ph = float(max(pixel_height, 1))
        scale = ph / BASE_PIXEL_HEIGHT
        width_scale = max(pw / BASE_PIXEL_WIDTH, 0.8)

        ground_h = float(int(max(8.0 * scale, 6.0)))
        sky_h = max(ph - ground_h, 1.0)

        min_gap = float(int(max(13.0 * scale, 10.0)))
        max_gap = float(int(max(17.0 * scale, 13.0)))
        # Keep the whole gap on screen even in tiny terminals
        min_margin = min(max_gap * 0.7, sky_h / 2.0)

        return cls(
            screen_width=pw,
            screen_height=sky_h,
            ground_height=ground_h,
            bird_x=max(pw * 0.22, 10.0),
            bird_start_y=sky_h * 0.4,
            bird_half_width=2.0 * scale,
            bird_half_height=1.5 * scale,
            gravity=180.0 * scale,
            flap_impulse=-60.0 * scale,
            terminal_velocity=100.0 * scale,
            pipe_width=float(int(min(max(8.0 * scale, 5.0), 14.0))),
            pipe_speed=33.0 * width_scale,
            pipe_spacing=max(pw * 0.42, 28.0),
            min_gap=min_gap,
            max_gap=max_gap,
            min_margin=min_margin,
            bob_amplitude=3.0 * scale,
        )


DEFAULT_CONFIG = GameConfig()
