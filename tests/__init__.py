"""Unit tests for flappy_term. Run with `python -m unittest discover tests`."""
