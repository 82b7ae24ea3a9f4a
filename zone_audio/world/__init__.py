"""
World Module - Gameplay triggers for the mixer.
"""

from .music_zone import (
    MusicZone,
    PolygonMusicZone,
    MusicZoneData,
    PolygonMusicZoneData,
    SfxZoneData,
    build_music_zones,
    build_sfx_zones,
    point_in_polygon
)
from .memory_item import MemoryItem, MemoryItemData

__all__ = [
    'MusicZone',
    'PolygonMusicZone',
    'MusicZoneData',
    'PolygonMusicZoneData',
    'SfxZoneData',
    'build_music_zones',
    'build_sfx_zones',
    'point_in_polygon',
    'MemoryItem',
    'MemoryItemData',
]
