"""
Memory pickups that play a one-shot piece of music when collected.
"""

import math
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class MemoryItemData:
    """A memory as stored in a zone map."""

    x: float
    y: float
    radius: float = 40.0
    caption: str = ''
    # Optional music file to play when collected
    music_file: Optional[str] = None
    volume: float = 0.8

    @classmethod
    def from_dict(cls, entry):
        return cls(
            x=entry['x'],
            y=entry['y'],
            radius=entry.get('radius', 40.0),
            caption=entry.get('caption', ''),
            music_file=entry.get('musicFile'),
            volume=entry.get('volume', 0.8),
        )


class MemoryItem:
    """Collects once when the avatar comes within range."""

    def __init__(self, data):
        self.data = data
        self.collected = False

    def update(self, position, mixer):
        if self.collected:
            return False

        distance = math.hypot(position[0] - self.data.x, position[1] - self.data.y)
        if distance > self.data.radius:
            return False

        self.collected = True
        logger.info(f"Collected memory '{self.data.caption}' at ({self.data.x}, {self.data.y})")
        if self.data.music_file:
            mixer.play_memory_music(self.data.music_file, volume=self.data.volume)
        return True
