"""
Audio Module - Zone music mixing and playback.

This module provides:
- The zone mixer with ambient ducking and volume ramps
- Playback backends for pyglet and pygame
"""

from .backend import PygletBackend, PygameBackend, create_backend
from .mixer import AMBIENT_ZONE_ID, AudioMixer, MusicTrack, SfxZone
from .ramp import clamp, distance_gain, ramp_volume

__all__ = [
    'AMBIENT_ZONE_ID',
    'AudioMixer',
    'MusicTrack',
    'SfxZone',
    'PygletBackend',
    'PygameBackend',
    'create_backend',
    'clamp',
    'distance_gain',
    'ramp_volume',
]
