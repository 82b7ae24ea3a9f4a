"""
Shared test fixtures: a fake playback backend that records every call.
"""

import threading

import pytest

from zone_audio.audio.mixer import AudioMixer
from zone_audio.errors import AudioLoadError


class FakeHandle:
    """Playback handle that remembers every volume it was given."""

    def __init__(self, path, volume):
        self.path = path
        self.volumes = [volume]
        self.stopped = False

    @property
    def volume(self):
        return self.volumes[-1]

    def set_volume(self, level):
        self.volumes.append(level)

    def stop(self):
        self.stopped = True


class FakeBackend:
    """
    In-memory backend.

    Paths passed to fail() raise AudioLoadError. hold() blocks every load
    until release(), which keeps a request in flight; `loading` is set once a
    load has reached the backend.
    """

    name = 'fake'

    def __init__(self):
        self.loops = []
        self.one_shots = []
        self.failing = set()
        self.loading = threading.Event()
        self._gate = threading.Event()
        self._gate.set()

    def fail(self, path):
        self.failing.add(path)

    def hold(self):
        self._gate.clear()

    def release(self):
        self._gate.set()

    def _check(self, path):
        self.loading.set()
        self._gate.wait(timeout=5.0)
        if path in self.failing:
            raise AudioLoadError(f"Cannot load {path}: missing")

    def start_loop(self, path, volume=0.0):
        self._check(path)
        handle = FakeHandle(path, volume)
        self.loops.append(handle)
        return handle

    def play_once(self, path, volume=1.0):
        self._check(path)
        self.one_shots.append((path, volume))

    def handles_for(self, path):
        return [h for h in self.loops if h.path == path]


@pytest.fixture
def backend():
    fake = FakeBackend()
    yield fake
    fake.release()


@pytest.fixture
def mixer(backend):
    m = AudioMixer(backend=backend, asset_root='assets')
    yield m
    m.dispose()
