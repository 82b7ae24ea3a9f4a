"""
Audio zone mixer.

The mixer keeps one looping track per zone and ramps every track toward a
target volume each tick, so entering and leaving zones cross-fades instead of
cutting. An ambient track plays whenever no zone is occupied and ducks to
silence while any zone is.

All methods are meant to be called from a single thread (the tick loop).
Resource loading happens on a LoaderWorker thread; finished loads are
registered during update().
"""

import math
import queue
import logging
from dataclasses import dataclass
from typing import Any, Optional

from zone_audio.config import AudioConfig, LoaderConfig, SfxZoneConfig
from zone_audio.audio.backend import create_backend
from zone_audio.audio.ramp import clamp, distance_gain, ramp_volume
from zone_audio.core.utils import resolve_resource
from zone_audio.core.workers import LoadCommand, LoaderWorker

logger = logging.getLogger(__name__)

AMBIENT_ZONE_ID = AudioConfig.AMBIENT_ZONE_ID

MUSIC = 'music'
SFX = 'sfx'


class MusicTrack:
    """
    One actively loaded looping playback.

    The track exclusively owns its playback handle: nothing else may call
    set_volume() or stop() on it.
    """

    def __init__(self, handle, max_volume, resource='', current_volume=0.0):
        self.handle = handle
        # Requested ceiling; max_volume is the effective one while the volume comes down to it
        self.ceiling = max_volume
        self.max_volume = max_volume
        self.resource = resource
        self.current_volume = current_volume

    def retarget(self, max_volume):
        """Change the ceiling; a lowered ceiling is reached by ramping, not by a jump."""
        self.ceiling = max_volume
        self.max_volume = max(max_volume, self.current_volume)

    def step(self, target, rate, dt):
        """Ramp toward target and shrink the effective ceiling as the volume falls."""
        self.current_volume = ramp_volume(self.current_volume, target, rate, dt, self.max_volume)
        self.max_volume = max(self.ceiling, self.current_volume)
        return self.current_volume

    def apply_volume(self, level):
        self.handle.set_volume(level)

    def stop(self):
        self.handle.stop()

    def __repr__(self):
        return (f"MusicTrack({self.resource!r}, current={self.current_volume:.2f}, "
                f"max={self.max_volume:.2f})")


@dataclass
class SfxZone:
    """A point sound source whose loudness falls off with listener distance."""

    zone_id: str
    resource: str
    x: float
    y: float
    inner_radius: float = SfxZoneConfig.INNER_RADIUS
    outer_radius: float = SfxZoneConfig.OUTER_RADIUS
    max_volume: float = SfxZoneConfig.MAX_VOLUME
    loop: bool = True
    handle: Optional[Any] = None
    triggered: bool = False

    def gain_at(self, x: float, y: float) -> float:
        distance = math.hypot(x - self.x, y - self.y)
        return distance_gain(distance, self.inner_radius, self.outer_radius) * self.max_volume


class AudioMixer:
    """
    Manages zone music with smooth volume transitions.

    State:
        tracks: zone id -> MusicTrack
        target volumes: zone id -> desired volume (may exist while the load is in flight)
        pending loads: zone id -> LoadCommand, at most one per zone
        active zones: zones the driver has entered (never the ambient id)
    """

    def __init__(self, backend=None,
                 ramp_speed=AudioConfig.VOLUME_RAMP_SPEED,
                 ambient_file=AudioConfig.DEFAULT_AMBIENT_FILE,
                 ambient_volume=AudioConfig.DEFAULT_AMBIENT_VOLUME,
                 master_volume=AudioConfig.DEFAULT_MASTER_VOLUME,
                 asset_root=AudioConfig.ASSET_ROOT):
        """
        Initialize the mixer and start its loader thread.

        Args:
            backend: Playback backend; probed with create_backend() when omitted
            ramp_speed (float): Volume units per second
            ambient_file (str): Ambient music resource (relative to the music directory)
            ambient_volume (float): Ambient level when no zone is occupied
            master_volume (float): Initial master volume
            asset_root (str): Root directory of audio assets
        """
        self.backend = backend if backend is not None else create_backend()
        self.ramp_speed = ramp_speed
        self.ambient_file = ambient_file
        self.ambient_volume = clamp(ambient_volume)
        self.asset_root = asset_root

        self._tracks = {}
        self._target_volumes = {}
        self._pending = {}
        self._active_zones = set()

        self._sfx_zones = {}
        self._sfx_pending = {}
        self._listener = None

        self._master_volume = clamp(master_volume)
        self._music_volume = AudioConfig.DEFAULT_MUSIC_VOLUME
        self._sfx_volume = AudioConfig.DEFAULT_SFX_VOLUME
        self._enabled = True

        self._results = queue.Queue()
        self.loader = LoaderWorker(self.backend, self._results)
        self.loader.start()

        logger.info(f"Initialized audio mixer (ramp {ramp_speed}/s, ambient {self.ambient_volume})")

    # ==================== Settings ====================

    @property
    def master_volume(self):
        return self._master_volume

    @master_volume.setter
    def master_volume(self, value):
        self._master_volume = clamp(value)

    @property
    def music_volume(self):
        return self._music_volume

    @music_volume.setter
    def music_volume(self, value):
        self._music_volume = clamp(value)

    @property
    def sfx_volume(self):
        return self._sfx_volume

    @sfx_volume.setter
    def sfx_volume(self, value):
        self._sfx_volume = clamp(value)

    @property
    def enabled(self):
        return self._enabled

    @enabled.setter
    def enabled(self, value):
        self._enabled = bool(value)
        logger.info(f"Audio {'enabled' if self._enabled else 'disabled'}")
        if not self._enabled:
            self.stop_all()

    # ==================== Inspection ====================

    @property
    def active_zones(self):
        """Zones currently entered, excluding ambient."""
        return frozenset(self._active_zones)

    @property
    def zones(self):
        """Zone ids that own a track."""
        return list(self._tracks)

    def track(self, zone_id):
        return self._tracks.get(zone_id)

    def has_track(self, zone_id):
        return zone_id in self._tracks

    @property
    def loading_zones(self):
        """Zone ids with a load in flight, including zones already faded out."""
        return frozenset(self._pending)

    def is_loading(self, zone_id):
        return zone_id in self._pending

    def target_volume(self, zone_id):
        return self._target_volumes.get(zone_id)

    def sfx_zone(self, zone_id):
        return self._sfx_zones.get(zone_id)

    # ==================== Music ====================

    def start_ambient_music(self):
        """Start the default ambient music (call once at game start)."""
        if not self._enabled:
            logger.debug("Audio disabled, not starting ambient music")
            return
        if AMBIENT_ZONE_ID in self._tracks or AMBIENT_ZONE_ID in self._pending:
            return

        command = LoadCommand(LoadCommand.LOOP, self._music_path(self.ambient_file),
                              volume=0.0, key=AMBIENT_ZONE_ID, max_volume=self.ambient_volume)
        if self._submit(command):
            self._update_ambient_volume()

    def play_zone_music(self, zone_id, resource, max_volume=1.0):
        """
        Start playing music for a zone (it will fade in).

        Re-entering a zone that already has a track, or whose track is still
        loading, only updates the target volume.

        Args:
            zone_id (str): Zone identifier
            resource (str): Music file (relative to the music directory)
            max_volume (float): Ceiling for this zone's music (0.0 - 1.0)
        """
        if not self._enabled:
            logger.debug(f"Audio disabled, ignoring music for zone {zone_id}")
            return
        if zone_id == AMBIENT_ZONE_ID:
            logger.warning(f"Zone id {zone_id} is reserved for ambient music")
            return

        max_volume = clamp(max_volume)

        # Track that we're in this zone
        self._active_zones.add(zone_id)
        self._update_ambient_volume()

        track = self._tracks.get(zone_id)
        if track is not None:
            track.retarget(max_volume)
            self._target_volumes[zone_id] = max_volume
            return

        pending = self._pending.get(zone_id)
        if pending is not None:
            pending.max_volume = max_volume
            self._target_volumes[zone_id] = max_volume
            return

        command = LoadCommand(LoadCommand.LOOP, self._music_path(resource),
                              volume=0.0, key=zone_id, max_volume=max_volume)
        if self._submit(command):
            self._target_volumes[zone_id] = max_volume

    def fade_out_zone(self, zone_id):
        """Start fading out music for a zone."""
        self._active_zones.discard(zone_id)
        self._update_ambient_volume()

        if zone_id in self._target_volumes:
            self._target_volumes[zone_id] = 0.0

    def _update_ambient_volume(self):
        """Duck ambient while any zone is occupied, restore it otherwise."""
        if AMBIENT_ZONE_ID not in self._tracks and AMBIENT_ZONE_ID not in self._pending:
            return

        if self._active_zones:
            self._target_volumes[AMBIENT_ZONE_ID] = 0.0
        else:
            self._target_volumes[AMBIENT_ZONE_ID] = self.ambient_volume

    def play_memory_music(self, resource, volume=AudioConfig.MEMORY_MUSIC_VOLUME):
        """Play one-shot music for a memory (doesn't loop, plays on top)."""
        if not self._enabled:
            logger.debug(f"Audio disabled, ignoring memory music {resource}")
            return

        level = clamp(volume) * self._master_volume * self._music_volume
        command = LoadCommand(LoadCommand.ONE_SHOT, self._music_path(resource), volume=level)
        if self.loader.enqueue_command(command):
            logger.info(f"Playing memory music: {resource}")

    def play_sfx(self, resource, volume=AudioConfig.SFX_VOLUME):
        """Play a one-shot sound effect on the SFX channel."""
        if not self._enabled:
            logger.debug(f"Audio disabled, ignoring sfx {resource}")
            return

        level = clamp(volume) * self._master_volume * self._sfx_volume
        command = LoadCommand(LoadCommand.ONE_SHOT, self._sfx_path(resource), volume=level, category=SFX)
        self.loader.enqueue_command(command)

    # ==================== SFX Zones ====================

    def register_sfx_zone(self, zone_id, resource, x, y,
                          inner_radius=SfxZoneConfig.INNER_RADIUS,
                          outer_radius=SfxZoneConfig.OUTER_RADIUS,
                          max_volume=SfxZoneConfig.MAX_VOLUME,
                          loop=True):
        """
        Register a distance-attenuated sound source.

        Looping sources play continuously with volume following the listener
        distance. Non-looping sources play once when the listener comes into
        range and re-arm after the listener leaves.
        """
        if not self._enabled:
            logger.debug(f"Audio disabled, ignoring sfx zone {zone_id}")
            return
        if zone_id in self._sfx_zones:
            self.unregister_sfx_zone(zone_id)

        inner_radius = max(0.0, inner_radius)
        zone = SfxZone(
            zone_id=zone_id,
            resource=self._sfx_path(resource),
            x=x,
            y=y,
            inner_radius=inner_radius,
            outer_radius=max(inner_radius, outer_radius),
            max_volume=clamp(max_volume),
            loop=loop,
        )

        if loop:
            command = LoadCommand(LoadCommand.LOOP, zone.resource, volume=0.0,
                                  key=zone_id, max_volume=zone.max_volume, category=SFX)
            if not self.loader.enqueue_command(command):
                logger.error(f"Could not queue sfx zone {zone_id}")
                return
            self._sfx_pending[zone_id] = command

        self._sfx_zones[zone_id] = zone
        logger.debug(f"Registered sfx zone {zone_id} at ({x}, {y})")

    def unregister_sfx_zone(self, zone_id):
        zone = self._sfx_zones.pop(zone_id, None)
        command = self._sfx_pending.pop(zone_id, None)
        if command is not None:
            command.cancel()
        if zone is not None and zone.handle is not None:
            zone.handle.stop()

    def set_listener_position(self, x, y):
        """Set the position used for sfx zone attenuation on the next update."""
        self._listener = (float(x), float(y))

    def _update_sfx_zones(self):
        if self._listener is None:
            return

        x, y = self._listener
        level = self._master_volume * self._sfx_volume
        for zone in self._sfx_zones.values():
            gain = zone.gain_at(x, y)
            if zone.loop:
                if zone.handle is not None:
                    zone.handle.set_volume(gain * level)
            elif gain > 0.0:
                if not zone.triggered:
                    command = LoadCommand(LoadCommand.ONE_SHOT, zone.resource, volume=gain * level, category=SFX)
                    # A dropped request is retried on the next update
                    zone.triggered = self.loader.enqueue_command(command)
            else:
                zone.triggered = False

    # ==================== Tick ====================

    def update(self, dt):
        """
        Update volume transitions (call each frame).

        Args:
            dt (float): Seconds elapsed since the previous call
        """
        self._drain_results()

        if not self._enabled:
            return

        dt = max(0.0, dt)
        level = self._master_volume * self._music_volume
        finished = []

        for zone_id, track in self._tracks.items():
            target = self._target_volumes.get(zone_id, 0.0)
            track.step(target, self.ramp_speed, dt)
            track.apply_volume(track.current_volume * level)

            # Fully faded out; the ambient track idles at zero instead
            if zone_id != AMBIENT_ZONE_ID and track.current_volume <= 0.0 and target <= 0.0:
                finished.append(zone_id)

        for zone_id in finished:
            self._stop_zone(zone_id)

        self._update_sfx_zones()

    def wait_for_loads(self):
        """Block until queued loads have run, then register their results."""
        self.loader.wait_idle()
        self._drain_results()

    # ==================== Stopping ====================

    def _stop_zone(self, zone_id):
        track = self._tracks.pop(zone_id, None)
        self._target_volumes.pop(zone_id, None)
        if track is not None:
            track.stop()
            logger.info(f"Stopped music for zone: {zone_id}")

    def stop_all(self):
        """
        Stop all music immediately.

        Cancels in-flight loads and clears every registry. Occupied zones are
        kept: they describe where the listener is, not what is playing.
        """
        for command in list(self._pending.values()) + list(self._sfx_pending.values()):
            command.cancel()
        self._pending.clear()
        self._sfx_pending.clear()
        self.loader.clear_queue()

        for track in self._tracks.values():
            track.stop()
        self._tracks.clear()
        self._target_volumes.clear()

        for zone in self._sfx_zones.values():
            if zone.handle is not None:
                zone.handle.stop()
        self._sfx_zones.clear()

        logger.info("Stopped all music")

    def dispose(self):
        """Stop everything and shut down the loader thread."""
        self.stop_all()
        self.loader.stop()
        self.loader.join(timeout=LoaderConfig.THREAD_SHUTDOWN_TIMEOUT)
        self._drain_results()

    # ==================== Loader Results ====================

    def _submit(self, command):
        if not self.loader.enqueue_command(command):
            logger.error(f"Could not queue music {command.path} for zone {command.key}")
            return False
        self._pending[command.key] = command
        return True

    def _drain_results(self):
        while True:
            try:
                result = self._results.get_nowait()
            except queue.Empty:
                return

            if result.command.category == SFX:
                self._register_sfx_loop(result)
            else:
                self._register_track(result)

    def _register_track(self, result):
        command = result.command
        zone_id = command.key
        if self._pending.get(zone_id) is command:
            del self._pending[zone_id]

        if command.cancelled:
            if result.ok:
                result.handle.stop()
            logger.debug(f"Discarded cancelled load for zone {zone_id}")
            return

        if not result.ok:
            logger.error(f"Error playing music {command.path}: {result.error}")
            if zone_id not in self._tracks:
                self._target_volumes.pop(zone_id, None)
            return

        if not self._enabled or zone_id in self._tracks:
            result.handle.stop()
            logger.debug(f"Discarded stale load for zone {zone_id}")
            return

        self._tracks[zone_id] = MusicTrack(result.handle, command.max_volume, command.path)
        self._target_volumes.setdefault(zone_id, command.max_volume)

        if zone_id == AMBIENT_ZONE_ID:
            self._update_ambient_volume()
            logger.info(f"Started ambient music: {command.path}")
        else:
            logger.info(f"Started music for zone: {zone_id} ({command.path})")

    def _register_sfx_loop(self, result):
        command = result.command
        zone_id = command.key
        zone = self._sfx_zones.get(zone_id)
        if self._sfx_pending.get(zone_id) is command:
            del self._sfx_pending[zone_id]

        if not result.ok:
            if not command.cancelled:
                logger.error(f"Error starting sfx zone {zone_id}: {result.error}")
                self._sfx_zones.pop(zone_id, None)
            return

        if command.cancelled or zone is None or zone.handle is not None:
            result.handle.stop()
            return

        zone.handle = result.handle
        logger.info(f"Started sfx zone: {zone_id} ({command.path})")

    # ==================== Paths ====================

    def _music_path(self, resource):
        return resolve_resource(resource, self.asset_root, AudioConfig.MUSIC_DIR)

    def _sfx_path(self, resource):
        return resolve_resource(resource, self.asset_root, AudioConfig.SFX_DIR)
