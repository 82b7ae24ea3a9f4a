"""
Core Module - Loader thread and utilities.

This module contains fundamental building blocks of the mixer:
- Utility functions (utils.py)
- Background loader thread (workers.py)
"""

from .utils import load_zone_map, resolve_resource

from .workers import (
    LoaderWorker,
    LoadCommand,
    LoadResult
)

__all__ = [
    # Utilities
    'load_zone_map',
    'resolve_resource',
    # Workers
    'LoaderWorker',
    'LoadCommand',
    'LoadResult',
]
