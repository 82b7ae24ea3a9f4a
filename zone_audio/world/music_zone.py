"""
Zone triggers that drive the mixer.

A music zone watches the avatar position every tick. When the avatar steps in,
the zone asks the mixer for its music; when the avatar steps out, the zone
asks the mixer to fade it. Zones are built from the "zones" and "sfxZones"
entries of a zone map.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from zone_audio.config import SfxZoneConfig

logger = logging.getLogger(__name__)


def point_in_polygon(point, vertices):
    """
    Ray casting test for a point against a closed polygon.

    Args:
        point: (x, y) position
        vertices: Sequence of (x, y) polygon corners

    Returns:
        bool: True if the point is inside; polygons with fewer than 3 vertices contain nothing
    """
    verts = np.asarray(vertices, dtype=float)
    if verts.ndim != 2 or verts.shape[0] < 3:
        return False

    px, py = float(point[0]), float(point[1])
    xi, yi = verts[:, 0], verts[:, 1]
    xj, yj = np.roll(xi, 1), np.roll(yi, 1)

    crosses = (yi > py) != (yj > py)
    # Horizontal edges never cross, so their nan/inf intercepts are masked out
    with np.errstate(divide='ignore', invalid='ignore'):
        x_hit = (xj - xi) * (py - yi) / (yj - yi) + xi
    hits = crosses & (px < x_hit)
    return bool(np.count_nonzero(hits) % 2)


class ZoneTrigger:
    """Base class: edge-detects the avatar entering and leaving a region."""

    def __init__(self, zone_id, music_file, max_volume=1.0):
        self.zone_id = zone_id
        self.music_file = music_file
        self.max_volume = max_volume
        self.player_in_zone = False

    def contains(self, point):
        raise NotImplementedError

    def update(self, position, mixer):
        """
        Check the avatar position and notify the mixer on enter/exit.

        Args:
            position: (x, y) avatar position
            mixer (AudioMixer): Mixer to drive
        """
        is_in_zone = self.contains(position)

        if is_in_zone and not self.player_in_zone:
            self.player_in_zone = True
            logger.debug(f"Entered zone {self.zone_id}")
            mixer.play_zone_music(self.zone_id, self.music_file, max_volume=self.max_volume)
        elif not is_in_zone and self.player_in_zone:
            self.player_in_zone = False
            logger.debug(f"Left zone {self.zone_id}")
            mixer.fade_out_zone(self.zone_id)


class MusicZone(ZoneTrigger):
    """A rectangular zone that triggers music playback when the avatar enters."""

    def __init__(self, x, y, width, height, zone_id, music_file, max_volume=1.0):
        super().__init__(zone_id, music_file, max_volume)
        self.x = x
        self.y = y
        self.width = width
        self.height = height

    def contains(self, point):
        px, py = point[0], point[1]
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height


class PolygonMusicZone(ZoneTrigger):
    """A polygon zone that triggers music playback when the avatar enters."""

    def __init__(self, vertices, zone_id, music_file, max_volume=1.0):
        super().__init__(zone_id, music_file, max_volume)
        self.vertices = np.asarray(vertices, dtype=float)

    def contains(self, point):
        return point_in_polygon(point, self.vertices)


# ==================== Map Data ====================

@dataclass
class MusicZoneData:
    """Rectangular music zone as stored in a zone map."""

    x: float
    y: float
    width: float
    height: float
    zone_id: str
    music_file: str
    max_volume: float = 1.0

    @classmethod
    def from_dict(cls, entry):
        return cls(
            x=entry['x'],
            y=entry['y'],
            width=entry['width'],
            height=entry['height'],
            zone_id=entry['zoneId'],
            music_file=entry['musicFile'],
            max_volume=entry.get('maxVolume', 1.0),
        )

    def to_music_zone(self):
        return MusicZone(self.x, self.y, self.width, self.height,
                         self.zone_id, self.music_file, self.max_volume)


@dataclass
class PolygonMusicZoneData:
    """Polygon music zone as stored in a zone map."""

    vertices: List[Tuple[float, float]]
    zone_id: str
    music_file: str
    max_volume: float = 1.0

    @classmethod
    def from_dict(cls, entry):
        return cls(
            vertices=[tuple(v) for v in entry['vertices']],
            zone_id=entry['zoneId'],
            music_file=entry['musicFile'],
            max_volume=entry.get('maxVolume', 1.0),
        )

    def to_music_zone(self):
        return PolygonMusicZone(self.vertices, self.zone_id, self.music_file, self.max_volume)


@dataclass
class SfxZoneData:
    """Point sound source with distance falloff."""

    x: float
    y: float
    zone_id: str
    sfx_file: str
    inner_radius: float = SfxZoneConfig.INNER_RADIUS
    outer_radius: float = SfxZoneConfig.OUTER_RADIUS
    max_volume: float = SfxZoneConfig.MAX_VOLUME
    # If true, plays once when entering range and resets when leaving
    one_shot: bool = False

    @classmethod
    def from_dict(cls, entry):
        return cls(
            x=entry['x'],
            y=entry['y'],
            zone_id=entry['zoneId'],
            sfx_file=entry['sfxFile'],
            inner_radius=entry.get('innerRadius', SfxZoneConfig.INNER_RADIUS),
            outer_radius=entry.get('outerRadius', SfxZoneConfig.OUTER_RADIUS),
            max_volume=entry.get('maxVolume', SfxZoneConfig.MAX_VOLUME),
            one_shot=entry.get('oneShot', False),
        )

    def register(self, mixer):
        """Register this sfx zone with the mixer."""
        mixer.register_sfx_zone(
            self.zone_id,
            self.sfx_file,
            self.x,
            self.y,
            inner_radius=self.inner_radius,
            outer_radius=self.outer_radius,
            max_volume=self.max_volume,
            loop=not self.one_shot,
        )


ZONE_TYPES = {
    'rect': MusicZoneData,
    'polygon': PolygonMusicZoneData,
}


def build_music_zones(entries: Sequence[dict]) -> List[ZoneTrigger]:
    """
    Build zone triggers from zone map entries.

    Entries without a "type" are rectangles; unknown types are skipped with a warning.
    """
    zones = []
    for entry in entries:
        zone_type = entry.get('type', 'rect')
        data_cls = ZONE_TYPES.get(zone_type)
        if data_cls is None:
            logger.warning(f"Unknown zone type {zone_type!r} for zone {entry.get('zoneId')}")
            continue
        zones.append(data_cls.from_dict(entry).to_music_zone())

    logger.info(f"Built {len(zones)} music zones")
    return zones


def build_sfx_zones(entries: Sequence[dict]) -> List[SfxZoneData]:
    return [SfxZoneData.from_dict(entry) for entry in entries]
