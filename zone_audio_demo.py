"""
Zone Audio demo - walks an avatar through a zone map.

This is the headless driver for the mixer: it loads a zone map, moves an
avatar along the map's route and ticks the mixer, so entering and leaving
zones can be heard (and followed in the log) without a game engine.
"""

import time
import argparse
import threading
import signal
import logging
import numpy as np
import pyglet

from zone_audio.config import AudioConfig, DriverConfig
from zone_audio.core.utils import load_zone_map
from zone_audio.audio.mixer import AudioMixer
from zone_audio.world.music_zone import build_music_zones, build_sfx_zones
from zone_audio.world.memory_item import MemoryItem, MemoryItemData

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class RouteWalker:
    """
    Moves a point along a polyline at constant speed.

    The avatar stops at the last waypoint.
    """

    def __init__(self, route, speed):
        self.points = np.asarray(route, dtype=float).reshape(-1, 2)
        if len(self.points) == 0:
            raise ValueError("Route needs at least one waypoint")
        self.speed = speed
        self.distance = 0.0

        seg = np.diff(self.points, axis=0)
        self.seg_lengths = np.hypot(seg[:, 0], seg[:, 1])
        self.cumulative = np.concatenate(([0.0], np.cumsum(self.seg_lengths)))
        self.total_length = float(self.cumulative[-1])

    @property
    def finished(self):
        return self.distance >= self.total_length

    @property
    def position(self):
        if self.finished or len(self.points) == 1:
            return self.points[-1]
        i = int(np.searchsorted(self.cumulative, self.distance, side='right')) - 1
        t = (self.distance - self.cumulative[i]) / self.seg_lengths[i]
        return self.points[i] + t * (self.points[i + 1] - self.points[i])

    def advance(self, dt):
        self.distance = min(self.total_length, self.distance + self.speed * dt)
        return self.position


def initialize_system(map_path, master_volume):
    """
    Initialize all system components.

    Args:
        map_path (str): Path to the zone map JSON file
        master_volume (float): Initial master volume

    Returns:
        dict: Dictionary containing all initialized components
    """
    logger.info("Initializing Zone Audio demo...")

    model = load_zone_map(map_path)

    mixer = AudioMixer(
        ambient_file=model.get('ambient', AudioConfig.DEFAULT_AMBIENT_FILE),
        ambient_volume=model.get('ambientVolume', AudioConfig.DEFAULT_AMBIENT_VOLUME),
        master_volume=master_volume,
        asset_root=model.get('assetRoot', AudioConfig.ASSET_ROOT),
    )

    zones = build_music_zones(model['zones'])
    sfx_zones = build_sfx_zones(model.get('sfxZones', []))
    memories = [MemoryItem(MemoryItemData.from_dict(m)) for m in model.get('memories', [])]

    route = model.get('route') or [[0.0, 0.0]]
    walker = RouteWalker(route, model.get('speed', DriverConfig.DEFAULT_SPEED))

    logger.info("System initialization complete")

    return {
        'model': model,
        'mixer': mixer,
        'zones': zones,
        'sfx_zones': sfx_zones,
        'memories': memories,
        'walker': walker,
    }


def setup_signal_handler(stop_event):
    """
    Setup signal handler for graceful shutdown.

    Args:
        stop_event (threading.Event): Event to signal on interrupt
    """
    def signal_handler(sig, frame):
        logger.info("Signal received, shutting down...")
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)


def start_audio(components):
    """Start ambient music and register sfx sources before the first tick."""
    mixer = components['mixer']
    mixer.start_ambient_music()
    for sfx_zone in components['sfx_zones']:
        sfx_zone.register(mixer)
    # Let the ambient track register so the first tick can fade it in
    mixer.wait_for_loads()


def log_status(components, elapsed):
    mixer = components['mixer']
    position = components['walker'].position
    volumes = ", ".join(
        f"{zone_id}={mixer.track(zone_id).current_volume:.2f}" for zone_id in mixer.zones
    )
    logger.info(f"[{elapsed:6.1f}s] avatar=({position[0]:.0f}, {position[1]:.0f}) "
                f"zones={sorted(mixer.active_zones)} tracks: {volumes or 'none'}")


def run_main_loop(components, stop_event, duration=None):
    """
    Main tick loop.

    Args:
        components (dict): System components
        stop_event (threading.Event): Event for shutdown coordination
        duration (float): Seconds to run; None runs until the route ends and music settles
    """
    mixer = components['mixer']
    walker = components['walker']
    tick = 1.0 / DriverConfig.TICK_RATE
    pump_pyglet = getattr(mixer.backend, 'name', None) == 'pyglet'

    start = time.time()
    last = start
    last_status = start

    logger.info(f"Starting main loop ({DriverConfig.TICK_RATE} Hz, route length {walker.total_length:.0f})")

    while not stop_event.is_set():
        now = time.time()
        dt = now - last
        last = now

        position = walker.advance(dt)
        for zone in components['zones']:
            zone.update(position, mixer)
        for memory in components['memories']:
            memory.update(position, mixer)
        mixer.set_listener_position(position[0], position[1])

        mixer.update(dt)

        # Update Pyglet event loop
        if pump_pyglet:
            pyglet.clock.tick()
            pyglet.app.platform_event_loop.dispatch_posted_events()

        if now - last_status >= DriverConfig.STATUS_INTERVAL:
            log_status(components, now - start)
            last_status = now

        if duration is not None:
            if now - start >= duration:
                break
        elif walker.finished and _settled(mixer):
            logger.info("Route finished and music settled")
            break

        time.sleep(max(0.0, tick - (time.time() - now)))


def _settled(mixer):
    """True once nothing is loading and every track sits at its target volume."""
    if mixer.loading_zones:
        return False
    return all(mixer.track(zone_id).current_volume == mixer.target_volume(zone_id)
               for zone_id in mixer.zones)


def cleanup(components):
    """
    Clean up resources and shut down gracefully.

    Args:
        components (dict): System components
    """
    logger.info("Cleaning up resources...")
    try:
        components['mixer'].dispose()
    except Exception as e:
        logger.error(f"Error disposing mixer: {e}", exc_info=True)
    logger.info("Cleanup complete")


# ==================== Main Entry Point ====================

def main(argv=None):
    parser = argparse.ArgumentParser(description='Zone Audio - cross-fading music zones demo')
    parser.add_argument('--map', help='Path to zone map JSON file',
                        default=DriverConfig.DEFAULT_MAP)
    parser.add_argument('--duration', type=float, default=None,
                        help='Seconds to run (default: until the route ends)')
    parser.add_argument('--master-volume', type=float, default=AudioConfig.DEFAULT_MASTER_VOLUME,
                        help='Master volume between 0.0 and 1.0')
    parser.add_argument('--mute', action='store_true',
                        help='Start with audio disabled (zone changes are still logged)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        components = initialize_system(args.map, args.master_volume)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Cannot start: {e}")
        return 1

    if args.mute:
        components['mixer'].enabled = False

    # Setup shutdown handling
    stop_event = threading.Event()
    setup_signal_handler(stop_event)

    logger.info("Running. Send SIGINT (Ctrl+C) to stop.")

    try:
        start_audio(components)
        run_main_loop(components, stop_event, duration=args.duration)
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received, shutting down...")
        stop_event.set()
    finally:
        cleanup(components)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
