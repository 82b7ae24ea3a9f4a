"""
Exceptions shared by the playback backends and the loader thread.
"""


class AudioLoadError(Exception):
    """Raised when a resource cannot be loaded or started."""
