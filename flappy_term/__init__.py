"""Flappy Bird in the terminal, with an optional NEAT autopilot."""

__version__ = "0.1.0"
