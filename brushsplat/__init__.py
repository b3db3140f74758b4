"""Gaussian splat PLY import/export, a symmetric 3x3 eigen-solver and orbit camera controls."""

__version__ = "0.1.0"