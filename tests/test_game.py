import unittest
from dataclasses import FrozenInstanceError, replace

from flappy_term.config import DEFAULT_CONFIG, GameConfig
from flappy_term.game import Game, InputEvent, InputKind, Phase, Trigger
from flappy_term.level import PipeLayout, pipe_at

DT = 1 / 30
FLAP = InputEvent(InputKind.FLAP)

# A bird that holds its height forever, through gaps it can't miss
HOVER = replace(DEFAULT_CONFIG, gravity=0.0, flap_impulse=0.0)


def wide_gaps(seed, index, config):
    return PipeLayout(gap_center=config.bird_start_y, gap_height=30.0)


def playing(config=DEFAULT_CONFIG, seed=42, **kwargs):
    game = Game(config, seed, **kwargs)
    game.tick(DT, [FLAP])
    game.drain_triggers()
    return game


def run_until_dead(game, limit=500):
    for _ in range(limit):
        snapshot = game.tick(DT)
        if snapshot.phase is Phase.DEAD:
            return snapshot
    raise AssertionError("bird never died")


class TestReady(unittest.TestCase):

    def test_new_game_waits_on_the_title_screen(self):
        snapshot = Game(DEFAULT_CONFIG, 1).snapshot()
        self.assertIs(snapshot.phase, Phase.READY)
        self.assertEqual(snapshot.score, 0)
        self.assertEqual(snapshot.tick, 0)
        self.assertEqual(snapshot.pipes, ())
        self.assertTrue(snapshot.bird.alive)

    def test_idles_without_input(self):
        game = Game(DEFAULT_CONFIG, 1)
        ys = {game.tick(DT).bird.y for _ in range(10)}
        snapshot = game.snapshot()
        self.assertIs(snapshot.phase, Phase.READY)
        self.assertEqual(snapshot.tick, 0)
        self.assertEqual(snapshot.pipes, ())
        self.assertGreater(len(ys), 1)
        self.assertGreater(snapshot.ground_offset, 0)

    def test_first_flap_starts_playing(self):
        game = Game(DEFAULT_CONFIG, 1)
        snapshot = game.tick(DT, [FLAP])
        self.assertIs(snapshot.phase, Phase.PLAYING)
        self.assertEqual(snapshot.score, 0)
        self.assertEqual(snapshot.tick, 0)
        self.assertEqual(snapshot.bird.velocity, DEFAULT_CONFIG.flap_impulse)
        self.assertEqual(game.drain_triggers(), [Trigger.FLAP])

    def test_extra_flaps_in_the_starting_frame_are_absorbed(self):
        game = Game(DEFAULT_CONFIG, 1)
        snapshot = game.tick(DT, [InputEvent(InputKind.FLAP, 0), InputEvent(InputKind.FLAP, 1)])
        self.assertIs(snapshot.phase, Phase.PLAYING)
        self.assertEqual(snapshot.tick, 0)
        self.assertEqual(game.drain_triggers(), [Trigger.FLAP])

    def test_quit_is_not_a_game_input(self):
        game = Game(DEFAULT_CONFIG, 1)
        self.assertIs(game.tick(DT, [InputEvent(InputKind.QUIT)]).phase, Phase.READY)

    def test_events_are_taken_in_arrival_order(self):
        game = Game(DEFAULT_CONFIG, 1)
        events = [InputEvent(InputKind.FLAP, 1), InputEvent(InputKind.QUIT, 0)]
        self.assertIs(game.tick(DT, events).phase, Phase.PLAYING)


class TestPipes(unittest.TestCase):

    def test_first_pipe_spawns_at_the_right_edge(self):
        game = playing()
        snapshot = game.tick(DT)
        self.assertEqual(snapshot.tick, 1)
        self.assertEqual(len(snapshot.pipes), 1)
        pipe = snapshot.pipes[0]
        self.assertEqual(pipe.index, 0)
        self.assertEqual(pipe.x, DEFAULT_CONFIG.spawn_x)
        self.assertEqual((pipe.gap_center, pipe.gap_height), pipe_at(42, 0, DEFAULT_CONFIG))
        self.assertIn(Trigger.WHOOSH, game.drain_triggers())

    def test_pipes_follow_the_seeded_layout_in_order(self):
        game = playing(HOVER, seed=5)
        seen = {}
        for _ in range(400):
            snapshot = game.tick(DT)
            xs = [pipe.x for pipe in snapshot.pipes]
            self.assertEqual(xs, sorted(xs))
            for pipe in snapshot.pipes:
                seen[pipe.index] = (pipe.gap_center, pipe.gap_height)
            if snapshot.phase is Phase.DEAD:
                break
        self.assertTrue(seen)
        for index, gap in seen.items():
            self.assertEqual(gap, pipe_at(5, index, HOVER))

    def test_pipes_retire_off_the_left_edge(self):
        game = playing(HOVER, layout=wide_gaps)
        indices = set()
        for _ in range(600):
            snapshot = game.tick(DT)
            indices.update(pipe.index for pipe in snapshot.pipes)
            for pipe in snapshot.pipes:
                self.assertGreaterEqual(pipe.x + HOVER.pipe_width + HOVER.retire_margin, 0)
        self.assertIs(snapshot.phase, Phase.PLAYING)
        self.assertGreater(min(pipe.index for pipe in snapshot.pipes), 0)
        self.assertLess(len(snapshot.pipes), len(indices))

    def test_speed_ramps_with_score_up_to_a_cap(self):
        cfg = DEFAULT_CONFIG
        self.assertEqual(cfg.speed_for_score(0), cfg.pipe_speed)
        self.assertGreater(cfg.speed_for_score(5), cfg.pipe_speed)
        self.assertAlmostEqual(cfg.speed_for_score(10_000), cfg.pipe_speed * cfg.max_speed_factor)


class TestScoring(unittest.TestCase):

    def test_each_pipe_scores_once_even_across_sub_steps(self):
        game = playing(HOVER, layout=wide_gaps)
        total_scores = 0
        last = 0
        for _ in range(200):
            # Each frame is split into several physics sub-steps
            snapshot = game.tick(HOVER.max_step * 5)
            total_scores += game.drain_triggers().count(Trigger.SCORE)
            self.assertIn(snapshot.score - last, (0, 1))
            last = snapshot.score
        self.assertGreater(snapshot.score, 1)
        self.assertEqual(total_scores, snapshot.score)
        for pipe in snapshot.pipes:
            if pipe.passed:
                self.assertLess(pipe.x + HOVER.pipe_width, snapshot.bird.x)

    def test_score_counts_when_the_pipe_clears_the_bird(self):
        game = playing(HOVER, layout=wide_gaps)
        while game.snapshot().score == 0:
            before = game.snapshot()
            after = game.tick(DT)
        pipe_before = before.pipes[0]
        pipe_after = after.pipes[0]
        self.assertGreaterEqual(pipe_before.x + HOVER.pipe_width, before.bird.x)
        self.assertLess(pipe_after.x + HOVER.pipe_width, after.bird.x)
        self.assertTrue(pipe_after.passed)


class TestDeathAndRestart(unittest.TestCase):

    def test_falling_bird_dies_once_and_freezes(self):
        game = playing()
        dead = run_until_dead(game)
        self.assertFalse(dead.bird.alive)
        self.assertEqual(dead.bird.velocity, 0.0)
        self.assertEqual(game.drain_triggers().count(Trigger.DEATH), 1)

        for _ in range(50):
            later = game.tick(DT)
        self.assertIs(later.phase, Phase.DEAD)
        self.assertEqual(later.bird, dead.bird)
        self.assertEqual(later.dead_ticks, 50)
        self.assertEqual(game.drain_triggers(), [])

    def test_restart_goes_back_to_ready_and_keeps_best(self):
        game = playing(HOVER, layout=wide_gaps)
        while game.snapshot().score < 2:
            game.tick(DT)
        # Crash into the ceiling
        game.bird = replace(game.bird, y=-10.0)
        dead = game.tick(DT)
        self.assertIs(dead.phase, Phase.DEAD)
        self.assertGreaterEqual(dead.score, 2)
        self.assertEqual(dead.best, dead.score)

        for _ in range(HOVER.restart_delay):
            game.tick(DT)
        ready = game.tick(DT, [FLAP])
        self.assertIs(ready.phase, Phase.READY)
        self.assertEqual(ready.score, 0)
        self.assertEqual(ready.best, dead.best)
        self.assertEqual(ready.pipes, ())
        self.assertTrue(ready.bird.alive)

    def test_flaps_right_after_death_are_ignored(self):
        game = playing()
        run_until_dead(game)
        game.drain_triggers()

        snapshot = game.tick(DT, [FLAP])
        self.assertIs(snapshot.phase, Phase.DEAD)
        self.assertEqual(snapshot.dead_ticks, 1)
        while snapshot.dead_ticks < DEFAULT_CONFIG.restart_delay:
            snapshot = game.tick(DT, [FLAP])
            self.assertIs(snapshot.phase, Phase.DEAD)
        self.assertEqual(game.drain_triggers(), [])

        self.assertIs(game.tick(DT, [FLAP]).phase, Phase.READY)

    def test_reset_after_death_matches_a_fresh_session(self):
        game = playing()
        run_until_dead(game)
        game.reset()
        fresh = Game(DEFAULT_CONFIG, 42)
        self.assertEqual(game.snapshot(), fresh.snapshot())

        for i in range(120):
            events = [FLAP] if i % 20 == 0 else []
            self.assertEqual(game.tick(DT, events), fresh.tick(DT, events))
        self.assertEqual(game.drain_triggers(), fresh.drain_triggers())

    def test_resize_restarts_but_keeps_best(self):
        game = playing()
        game.best = 7
        cfg = GameConfig.for_screen(120, 60)
        game.resize(cfg)
        snapshot = game.snapshot()
        self.assertIs(snapshot.phase, Phase.READY)
        self.assertEqual(snapshot.best, 7)
        self.assertEqual(snapshot.bird.x, cfg.bird_x)


class TestSnapshot(unittest.TestCase):

    def test_snapshots_are_detached_from_the_world(self):
        game = playing(HOVER, layout=wide_gaps)
        snapshot = game.tick(DT)
        x = snapshot.pipes[0].x
        game.tick(DT)
        self.assertEqual(snapshot.pipes[0].x, x)
        self.assertIsInstance(snapshot.pipes, tuple)
        with self.assertRaises(FrozenInstanceError):
            snapshot.score = 99
        with self.assertRaises(FrozenInstanceError):
            snapshot.pipes[0].x = 0.0


if __name__ == "__main__":
    unittest.main()
