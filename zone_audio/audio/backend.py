"""
Playback backends for Zone Audio.

This module is the only place that talks to an audio library. The mixer asks a
backend to start a looped playback (returning a handle with set_volume/stop)
or to fire a one-shot sound; everything else is bookkeeping.

HEADLESS MODE SUPPORT:
For Raspberry Pi or other headless systems without X11, the backend probe
falls back to pygame if pyglet fails. Pygame doesn't require an X11 display
for audio operations.
"""

import os
import logging

from zone_audio.errors import AudioLoadError

logger = logging.getLogger(__name__)


# ==================== Pyglet Backend ====================

class PygletHandle:
    """Handle for one looping pyglet player."""

    def __init__(self, player, path):
        self.player = player
        self.path = path

    def set_volume(self, level):
        try:
            self.player.volume = level
        except Exception as e:
            logger.debug(f"Error setting volume on {self.path}: {e}")

    def stop(self):
        try:
            self.player.pause()
            self.player.delete()
        except Exception as e:
            logger.debug(f"Error stopping player for {self.path}: {e}")


class PygletBackend:
    """
    Backend built on pyglet.media.

    Sources are decoded fully into memory (streaming=False) so a looped player
    can restart them without touching the disk again.
    """

    name = 'pyglet'

    def __init__(self):
        import pyglet.media
        self._media = pyglet.media
        # One-shot players must stay referenced until they finish
        self._one_shots = []

    def _load(self, path):
        try:
            return self._media.load(path, streaming=False)
        except Exception as e:
            raise AudioLoadError(f"Cannot load {path}: {e}") from e

    def start_loop(self, path, volume=0.0):
        """
        Start a looped playback.

        Args:
            path (str): Resource path
            volume (float): Initial volume (0.0 - 1.0)

        Returns:
            PygletHandle: Handle owning the player

        Raises:
            AudioLoadError: If the resource cannot be loaded or played
        """
        source = self._load(path)
        try:
            player = self._media.Player()
            player.queue(source)
            player.loop = True
            player.volume = volume
            player.play()
        except Exception as e:
            raise AudioLoadError(f"Cannot start {path}: {e}") from e
        logger.debug(f"Started pyglet loop {path}")
        return PygletHandle(player, path)

    def play_once(self, path, volume=1.0):
        """Play a non-looping sound at the given volume."""
        source = self._load(path)
        try:
            player = self._media.Player()
            player.queue(source)
            player.volume = volume
            player.play()
        except Exception as e:
            raise AudioLoadError(f"Cannot play {path}: {e}") from e
        self._one_shots = [p for p in self._one_shots if p.playing]
        self._one_shots.append(player)
        logger.debug(f"Playing pyglet one-shot {path} at volume {volume:.2f}")


# ==================== Pygame Backend ====================

class PygameHandle:
    """Handle for one looping pygame sound."""

    def __init__(self, sound, path):
        self.sound = sound
        self.path = path

    def set_volume(self, level):
        try:
            self.sound.set_volume(level)
        except Exception as e:
            logger.debug(f"Error setting volume on {self.path}: {e}")

    def stop(self):
        try:
            self.sound.stop()
        except Exception as e:
            logger.debug(f"Error stopping sound {self.path}: {e}")


class PygameBackend:
    """Backend built on pygame.mixer (headless compatible)."""

    name = 'pygame'

    def __init__(self):
        import pygame
        if not pygame.mixer.get_init():
            pygame.mixer.pre_init(frequency=44100, size=-16, channels=2, buffer=512)
            pygame.mixer.init()
        self._mixer = pygame.mixer

    def _load(self, path):
        try:
            return self._mixer.Sound(path)
        except Exception as e:
            raise AudioLoadError(f"Cannot load {path}: {e}") from e

    def start_loop(self, path, volume=0.0):
        sound = self._load(path)
        # Set volume before playing (pygame requirement)
        sound.set_volume(volume)
        if sound.play(loops=-1) is None:
            raise AudioLoadError(f"No free mixer channel for {path}")
        logger.debug(f"Started pygame loop {path}")
        return PygameHandle(sound, path)

    def play_once(self, path, volume=1.0):
        sound = self._load(path)
        sound.set_volume(volume)
        if sound.play() is None:
            raise AudioLoadError(f"No free mixer channel for {path}")
        logger.debug(f"Playing pygame one-shot {path} at volume {volume:.2f}")


# ==================== Backend Selection ====================

def create_backend():
    """
    Probe the available audio libraries.

    Pyglet is tried first, pygame second.

    Returns:
        PygletBackend, PygameBackend or None: The first backend that initialized,
        or None when no audio is available
    """
    # Set DISPLAY if not present (some systems can play audio without actual display)
    if 'DISPLAY' not in os.environ:
        os.environ['DISPLAY'] = ':0'
        logger.info("Set DISPLAY=:0 for pyglet audio")

    try:
        backend = PygletBackend()
        logger.info("Audio backend: pyglet")
        return backend
    except Exception as e:
        logger.warning(f"Failed to initialize pyglet: {e}")
        logger.info("Attempting to use pygame as audio backend...")

    try:
        backend = PygameBackend()
        logger.info("Audio backend: pygame (headless compatible)")
        return backend
    except Exception as e:
        logger.error(f"Failed to initialize pygame: {e}")

    logger.warning("=" * 60)
    logger.warning("WARNING: No audio backend available! Audio will not work.")
    logger.warning("Install pygame for headless audio: pip install pygame")
    logger.warning("=" * 60)
    return None
