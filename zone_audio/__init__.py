"""
Zone Audio - cross-fading music zones for 2D games

Keeps one looping track per gameplay zone and ramps volumes every tick so that
moving between zones fades music in and out instead of cutting it.

Main components:
- config: Centralized configuration
- audio: Mixer, volume ramps and playback backends (pyglet / pygame)
- core: Loader thread and utilities
- world: Zone and memory triggers that drive the mixer
"""

__version__ = "1.0.0"
