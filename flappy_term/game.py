"""
Game state machine.

READY --flap--> PLAYING --collision--> DEAD --flap--> READY

The game owns the mutable world. The renderer only ever sees frozen
`WorldSnapshot`s, the audio side only sees `Trigger`s drained from the
outbound queue.
"""

import math
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from operator import attrgetter
from typing import Tuple

from . import collision, physics
from .config import DEFAULT_CONFIG
from .level import pipe_at
from .physics import Bird


class Phase(Enum):
    READY = "ready"
    PLAYING = "playing"
    DEAD = "dead"


class InputKind(Enum):
    FLAP = "flap"
    QUIT = "quit"


class Trigger(Enum):
    """Fire-and-forget notifications for the audio side."""

    FLAP = "flap"
    SCORE = "score"
    DEATH = "death"
    WHOOSH = "whoosh"


@dataclass(frozen=True)
class InputEvent:
    kind: InputKind
    seq: int = 0  # arrival order within the frame


@dataclass
class Pipe:
    """A live obstacle in the active window."""

    index: int
    x: float
    gap_center: float
    gap_height: float
    passed: bool = False

    def view(self):
        return PipeView(self.index, self.x, self.gap_center, self.gap_height, self.passed)


@dataclass(frozen=True)
class PipeView:
    index: int
    x: float
    gap_center: float
    gap_height: float
    passed: bool

    @property
    def gap_top(self):
        return self.gap_center - self.gap_height / 2.0

    @property
    def gap_bottom(self):
        return self.gap_center + self.gap_height / 2.0


@dataclass(frozen=True)
class WorldSnapshot:
    """Read-only copy of the world for one frame."""

    phase: Phase
    bird: Bird
    pipes: Tuple[PipeView, ...]
    score: int
    best: int
    tick: int
    frame: int
    dead_ticks: int
    ground_offset: float
    seed: int


class Game:
    """
    One game session.

    `layout` maps (seed, index) to a pipe gap; it defaults to the seeded
    level generator and is swappable so fixed layouts can be flown.
    """

    def __init__(self, config=DEFAULT_CONFIG, seed=0, layout=pipe_at):
        self.config = config
        self.seed = seed
        self._layout = layout
        self._triggers = deque()
        self.best = 0
        self._new_round()

    # --- lifecycle -----------------------------------------------------

    def _new_round(self):
        """Back to the title screen. Keeps the session best."""
        cfg = self.config
        self.phase = Phase.READY
        self.bird = Bird(x=cfg.bird_x, y=cfg.bird_start_y)
        self.pipes = deque()
        self.next_index = 0
        self.score = 0
        self.tick_count = 0
        self.frame = 0
        self.dead_ticks = 0
        self.ground_offset = 0.0
        self._idle_time = 0.0
        self.bounds = collision.ScreenBounds.from_config(cfg)

    def reset(self):
        """Start over as if freshly created with the same seed and config."""
        self.best = 0
        self._triggers.clear()
        self._new_round()

    def resize(self, config):
        """New screen geometry. The round restarts, the best score survives."""
        self.config = config
        self._new_round()

    # --- outputs -------------------------------------------------------

    def snapshot(self):
        return WorldSnapshot(
            phase=self.phase,
            bird=self.bird,
            pipes=tuple(pipe.view() for pipe in self.pipes),
            score=self.score,
            best=self.best,
            tick=self.tick_count,
            frame=self.frame,
            dead_ticks=self.dead_ticks,
            ground_offset=self.ground_offset,
            seed=self.seed,
        )

    def drain_triggers(self):
        """Hand over and forget everything emitted since the last drain."""
        triggers = list(self._triggers)
        self._triggers.clear()
        return triggers

    # --- simulation ----------------------------------------------------

    def tick(self, dt, input_events=()):
        """
        Advance the world by one frame of `dt` seconds.

        Input events are handled in arrival order. A phase change consumes
        the frame: nothing else from this frame's events is applied and the
        simulation doesn't advance.
        """
        dt = max(float(dt), 0.0)
        events = sorted(input_events, key=attrgetter("seq"))
        flapped = any(event.kind is InputKind.FLAP for event in events)
        self.frame += 1

        if self.phase is Phase.READY:
            if flapped:
                self._start()
            else:
                self._idle(dt)
        elif self.phase is Phase.PLAYING:
            self._play(dt, flapped)
            self.tick_count += 1
        elif flapped and self.dead_ticks >= self.config.restart_delay:
            self._new_round()
        else:
            self.dead_ticks += 1

        return self.snapshot()

    def _start(self):
        self.phase = Phase.PLAYING
        self.pipes.clear()
        self.next_index = 0
        self.score = 0
        self.tick_count = 0
        self.bird = replace(self.bird, velocity=self.config.flap_impulse, alive=True)
        self._triggers.append(Trigger.FLAP)

    def _idle(self, dt):
        cfg = self.config
        self._idle_time += dt
        bob = math.sin(self._idle_time * cfg.bob_rate) * cfg.bob_amplitude
        self.bird = replace(self.bird, y=cfg.bird_start_y + bob)
        self.ground_offset += cfg.idle_scroll_speed * dt

    def _play(self, dt, flapped):
        if flapped:
            self._triggers.append(Trigger.FLAP)

        # Equal sub-steps no longer than max_step; at least one so a flap
        # on a zero-length frame still lands.
        steps = max(1, math.ceil(dt / self.config.max_step))
        h = dt / steps
        for i in range(steps):
            self._advance(h, flapped and i == 0)
            if self.phase is not Phase.PLAYING:
                break

    def _advance(self, h, flapped):
        cfg = self.config
        self.bird = physics.step(self.bird, h, flapped, cfg)

        dx = cfg.speed_for_score(self.score) * h
        self.ground_offset += dx
        for pipe in self.pipes:
            pipe.x -= dx
            if not pipe.passed and pipe.x + cfg.pipe_width < self.bird.x:
                pipe.passed = True
                self.score += 1
                self._triggers.append(Trigger.SCORE)

        while self.pipes and self.pipes[0].x + cfg.pipe_width + cfg.retire_margin < 0:
            self.pipes.popleft()

        if not self.pipes or self.pipes[-1].x < cfg.spawn_threshold:
            self._spawn()

        if collision.check(self.bird, self.pipes, self.bounds, cfg):
            self._die()

    def _spawn(self):
        gap_center, gap_height = self._layout(self.seed, self.next_index, self.config)
        self.pipes.append(
            Pipe(self.next_index, self.config.spawn_x, gap_center, gap_height)
        )
        self.next_index += 1
        self._triggers.append(Trigger.WHOOSH)

    def _die(self):
        self.phase = Phase.DEAD
        self.bird = replace(self.bird, velocity=0.0, alive=False)
        self.dead_ticks = 0
        self.best = max(self.best, self.score)
        self._triggers.append(Trigger.DEATH)
