"""
NEAT autopilot for the terminal Flappy Bird.

Trains feed-forward networks with neat-python against the headless game
core (no terminal, no audio), then lets the champion fly in the terminal.

- State: normalized height, distance to the next gap's edges, velocity
- Action: flap when the single tanh output exceeds 0.5
- Reward shaping:
    * +0.1 per tick alive
    * +20 per pipe passed
    * -1 on collision
    * small penalties for hugging the top/bottom and for flap spamming
"""

import argparse
import os
import pickle
import statistics
import sys
import time

import neat

from .app import run_session
from .config import DEFAULT_CONFIG, FPS, LOG_ENV
from .errors import FlappyError
from .game import Game, InputEvent, InputKind, Phase, Trigger
from .log import setup_logging
from .render import GAME_OVER_DELAY
from .seed import SEED_MASK, get_seed

CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config-feedforward.txt")
CHAMPION_PATH = "champion_bird.pkl"

JUMP_THRESHOLD = 0.5
TRAIN_DT = 1 / FPS
MAX_TICKS = 3000  # ~100 seconds of flight per genome

ALIVE_REWARD = 0.1
PIPE_REWARD = 20.0
DEATH_PENALTY = 1.0
EDGE_PENALTY = 0.01
FLAP_PENALTY = 0.03
EDGE_ZONE = 0.1  # fraction of the sky counted as "hugging" at either end


def load_neat_config(path=CONFIG_PATH):
    return neat.config.Config(
        neat.DefaultGenome,
        neat.DefaultReproduction,
        neat.DefaultSpeciesSet,
        neat.DefaultStagnation,
        path,
    )


def next_pipe(snapshot, config):
    """The first pipe the bird hasn't cleared yet, or None."""
    left = snapshot.bird.x - config.bird_half_width
    for pipe in snapshot.pipes:
        if pipe.x + config.pipe_width >= left:
            return pipe
    return None


def observe(snapshot, config):
    """Network inputs: (y_norm, top_diff, bottom_diff, vel_norm)."""
    bird = snapshot.bird
    h = config.screen_height
    pipe = next_pipe(snapshot, config)
    if pipe is None:
        # Nothing on screen yet: aim for the middle
        gap_top = h / 2 - config.min_gap / 2
        gap_bottom = h / 2 + config.min_gap / 2
    else:
        gap_top, gap_bottom = pipe.gap_top, pipe.gap_bottom

    return (
        bird.y / h,
        (bird.y - gap_top) / h,
        (bird.y - gap_bottom) / h,
        bird.velocity / config.terminal_velocity,
    )


def wants_flap(net, snapshot, config):
    return net.activate(observe(snapshot, config))[0] > JUMP_THRESHOLD


def evaluate(net, config, seed, max_ticks=MAX_TICKS):
    """
    Fly one bird without rendering. Returns (fitness, score).

    The first flap, which takes the game off the title screen, is free.
    """
    game = Game(config, seed)
    snapshot = game.tick(TRAIN_DT, [InputEvent(InputKind.FLAP)])
    game.drain_triggers()
    h = config.screen_height
    fitness = 0.0

    for _ in range(max_ticks):
        flap = wants_flap(net, snapshot, config)
        snapshot = game.tick(TRAIN_DT, [InputEvent(InputKind.FLAP)] if flap else [])
        triggers = game.drain_triggers()

        fitness += PIPE_REWARD * triggers.count(Trigger.SCORE)
        if snapshot.phase is Phase.DEAD:
            fitness -= DEATH_PENALTY
            break

        fitness += ALIVE_REWARD
        if flap:
            fitness -= FLAP_PENALTY
        if snapshot.bird.y < h * EDGE_ZONE or snapshot.bird.y > h * (1 - EDGE_ZONE):
            fitness -= EDGE_PENALTY

    return fitness, snapshot.score


def make_evaluator(config, seed, max_ticks=MAX_TICKS):
    """
    NEAT fitness callback. Each generation flies a different layout so the
    population can't memorize one course.
    """
    generation = 0

    def eval_genomes(genomes, neat_config):
        nonlocal generation
        layout_seed = (seed + generation) & SEED_MASK
        generation += 1
        for _, genome in genomes:
            net = neat.nn.FeedForwardNetwork.create(genome, neat_config)
            genome.fitness, _ = evaluate(net, config, layout_seed, max_ticks)

    return eval_genomes


class SimpleReporter(neat.reporting.BaseReporter):
    """Compact per-generation summary instead of neat's StdOutReporter."""

    def __init__(self, out=None):
        self.out = out or sys.stdout
        self.generation = None
        self.start_time = None

    def _print(self, text):
        print(text, file=self.out)

    def start_generation(self, generation):
        self.generation = generation
        self.start_time = time.time()
        self._print(f"\n ****** Running generation {generation} ****** \n")

    def post_evaluate(self, config, population, species, best_genome):
        fitnesses = [g.fitness for g in population.values() if g.fitness is not None]
        mean = statistics.mean(fitnesses) if fitnesses else 0.0
        stdev = statistics.pstdev(fitnesses) if len(fitnesses) > 1 else 0.0

        self._print(f"Population's average fitness: {mean:.5f} stdev: {stdev:.5f}")
        self._print(
            f"Best fitness: {best_genome.fitness:.5f} - size: "
            f"({len(best_genome.nodes)}, {len(best_genome.connections)})"
        )
        self._print("   ID   size  best_fit")
        self._print("  ====  ====  =========")
        for sid, s in species.species.items():
            best_in_species = max(population[g].fitness for g in s.members)
            self._print(f"{sid:5d}{len(s.members):6d}{best_in_species:10.1f}")

    def end_generation(self, config, population, species):
        if self.start_time is not None:
            self._print(f"Generation time: {time.time() - self.start_time:.3f} sec")


def train(config_path=CONFIG_PATH, generations=50, out_path=CHAMPION_PATH,
          max_ticks=MAX_TICKS, seed=None):
    """Evolve a champion against the default screen layout and pickle it."""
    seed = get_seed() if seed is None else seed
    neat_config = load_neat_config(config_path)

    population = neat.Population(neat_config)
    population.add_reporter(SimpleReporter())
    population.add_reporter(neat.StatisticsReporter())

    winner = population.run(make_evaluator(DEFAULT_CONFIG, seed, max_ticks), generations)

    with open(out_path, "wb") as f:
        pickle.dump(winner, f)

    print("\n================ TRAINING SUMMARY ================")
    print(f"Seed                 : {seed}")
    print(f"Best fitness (winner): {winner.fitness:.2f}")
    print(f"Network complexity   : {len(winner.nodes)} nodes, {len(winner.connections)} connections")
    print(f"Champion saved to    : {out_path}")
    print("=================================================\n")
    return winner


class NetPilot:
    """Flies the bird with a trained network and restarts after crashes."""

    def __init__(self, net):
        self.net = net

    def __call__(self, snapshot, config):
        if snapshot.phase is Phase.READY:
            return True
        if snapshot.phase is Phase.DEAD:
            # Let the score panel show for a moment before going again
            return snapshot.dead_ticks > GAME_OVER_DELAY * 2
        return wants_flap(self.net, snapshot, config)


def watch(genome, neat_config, seed=None):
    """Let `genome` play in the terminal until q is pressed."""
    net = neat.nn.FeedForwardNetwork.create(genome, neat_config)
    seed = get_seed() if seed is None else seed
    return run_session(seed, pilot=NetPilot(net))


def train_main(argv=None):
    parser = argparse.ArgumentParser(prog="flappy-train", description="Evolve a Flappy autopilot with NEAT.")
    parser.add_argument("--generations", type=int, default=50)
    parser.add_argument("--config", default=CONFIG_PATH, help="neat-python config file")
    parser.add_argument("--out", default=CHAMPION_PATH, help="where to pickle the champion")
    parser.add_argument("--max-ticks", type=int, default=MAX_TICKS, help="flight cap per genome")
    args = parser.parse_args(argv)

    train(args.config, args.generations, args.out, args.max_ticks)
    return 0


def champion_main(argv=None):
    parser = argparse.ArgumentParser(prog="flappy-champion", description="Watch a trained champion play.")
    parser.add_argument("--genome", default=CHAMPION_PATH)
    parser.add_argument("--config", default=CONFIG_PATH)
    args = parser.parse_args(argv)
    setup_logging(os.environ.get(LOG_ENV))

    try:
        with open(args.genome, "rb") as f:
            genome = pickle.load(f)
    except OSError as exc:
        print(f"[ERROR] cannot read champion {args.genome}: {exc}", file=sys.stderr)
        return 1
    print("[INFO] Loaded best genome!")

    try:
        best = watch(genome, load_neat_config(args.config))
    except FlappyError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return exc.exit_code
    except KeyboardInterrupt:
        return 0

    print(f"[INFO] Champion's best score: {best}")
    return 0
