"""Swap quote pipeline: provider quotes turned into ready-to-sign swap orders."""

__version__ = "0.1.0"
