"""
Configuration module for Zone Audio.

This module contains all configuration parameters and constants used throughout the mixer.
Centralizing configuration makes it easier to tune fades and understand system behavior.

TUNING:
- Faster cross-fades: raise VOLUME_RAMP_SPEED (1.0 = full fade in one second)
- Quieter background: lower DEFAULT_AMBIENT_VOLUME
- Slow disks: raise LOADER_QUEUE_MAXSIZE so bursts of zone changes are not dropped
"""

# ==================== Audio Configuration ====================
class AudioConfig:
    """Configuration for music and sound effect playback."""

    # Reserved zone id for the always-present background track
    AMBIENT_ZONE_ID = '_default_ambient'

    # Default ambient music file (relative to MUSIC_DIR)
    DEFAULT_AMBIENT_FILE = 'chillhome_trim_a.mp3'

    # Volume ramp speed in volume units per second
    VOLUME_RAMP_SPEED = 0.5

    # Ambient volume when no zone is occupied
    DEFAULT_AMBIENT_VOLUME = 0.6

    # Global volume channels (0.0 - 1.0)
    DEFAULT_MASTER_VOLUME = 0.7
    DEFAULT_MUSIC_VOLUME = 1.0
    DEFAULT_SFX_VOLUME = 1.0

    # One-shot defaults
    MEMORY_MUSIC_VOLUME = 0.8
    SFX_VOLUME = 1.0

    # Resource layout: <ASSET_ROOT>/<MUSIC_DIR>/<file>, <ASSET_ROOT>/<SFX_DIR>/<file>
    ASSET_ROOT = 'assets/audio'
    MUSIC_DIR = 'music'
    SFX_DIR = 'sfx'


# ==================== SFX Zone Configuration ====================
class SfxZoneConfig:
    """Defaults for distance-attenuated sound sources."""

    # Radius within which the sound plays at full volume
    INNER_RADIUS = 50.0

    # Radius beyond which the sound is silent
    OUTER_RADIUS = 300.0

    MAX_VOLUME = 0.8


# ==================== Loader Thread Configuration ====================
class LoaderConfig:
    """Configuration for the background resource loader thread."""

    # Maximum pending load/play commands before new requests are dropped
    LOADER_QUEUE_MAXSIZE = 32

    # Queue get timeout (seconds) so the worker can check its stop event
    QUEUE_GET_TIMEOUT = 0.1

    # Thread shutdown timeout (seconds)
    THREAD_SHUTDOWN_TIMEOUT = 2.0


# ==================== Driver Configuration ====================
class DriverConfig:
    """Configuration for the headless demo driver loop."""

    # Ticks per second
    TICK_RATE = 60

    # Avatar speed along the route when the map does not set one (units/s)
    DEFAULT_SPEED = 120.0

    # Default map file
    DEFAULT_MAP = 'models/House/house.json'

    # Log a status line every N seconds
    STATUS_INTERVAL = 5.0
