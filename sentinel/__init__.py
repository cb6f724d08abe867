"""Sentinel health aggregation probe."""

from .version import __version__

__all__ = ['__version__']
