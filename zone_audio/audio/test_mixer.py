"""
Tests for the zone mixer.

These run against the FakeBackend from conftest.py, so no audio device is
needed. Loads still go through the real LoaderWorker thread; wait_for_loads()
makes each step deterministic.
"""

import logging
import os
import random

import pytest

from zone_audio.audio.mixer import AMBIENT_ZONE_ID
from zone_audio.config import AudioConfig

logger = logging.getLogger(__name__)


def music(name):
    return os.path.join('assets', AudioConfig.MUSIC_DIR, name)


def sfx(name):
    return os.path.join('assets', AudioConfig.SFX_DIR, name)


def play_and_load(mixer, zone_id, resource, max_volume=1.0):
    mixer.play_zone_music(zone_id, resource, max_volume)
    mixer.wait_for_loads()


# ==================== Scenarios ====================

def test_kitchen_fades_in_then_out_and_is_removed(mixer, backend):
    """Fade in over two seconds, fade out over two seconds, then the track is gone."""
    play_and_load(mixer, 'kitchen', 'kitchen.mp3', 1.0)
    handle = backend.handles_for(music('kitchen.mp3'))[0]
    assert handle.volumes[0] == 0.0

    mixer.update(2.0)
    assert mixer.track('kitchen').current_volume == pytest.approx(1.0)
    assert handle.volume == pytest.approx(1.0 * mixer.master_volume)

    mixer.fade_out_zone('kitchen')
    mixer.update(2.0)

    assert not mixer.has_track('kitchen')
    assert mixer.target_volume('kitchen') is None
    assert handle.stopped


def test_partial_ramp_moves_at_ramp_speed(mixer):
    play_and_load(mixer, 'kitchen', 'kitchen.mp3', 1.0)
    mixer.update(0.5)
    assert mixer.track('kitchen').current_volume == pytest.approx(0.25)
    mixer.update(0.5)
    assert mixer.track('kitchen').current_volume == pytest.approx(0.5)


def test_master_volume_scales_applied_level(mixer, backend):
    play_and_load(mixer, 'hall', 'hall.mp3', 0.8)
    mixer.master_volume = 0.5
    mixer.update(2.0)

    handle = backend.handles_for(music('hall.mp3'))[0]
    assert mixer.track('hall').current_volume == pytest.approx(0.8)
    assert handle.volume == pytest.approx(0.4)


def test_music_volume_scales_applied_level(mixer, backend):
    mixer.master_volume = 1.0
    mixer.music_volume = 0.5
    play_and_load(mixer, 'hall', 'hall.mp3', 1.0)
    mixer.update(2.0)
    assert backend.handles_for(music('hall.mp3'))[0].volume == pytest.approx(0.5)


def test_disabling_stops_every_track_immediately(mixer, backend):
    mixer.start_ambient_music()
    play_and_load(mixer, 'kitchen', 'kitchen.mp3')
    play_and_load(mixer, 'garden', 'garden.mp3')
    mixer.update(0.5)

    mixer.enabled = False

    assert all(handle.stopped for handle in backend.loops)
    assert len(backend.loops) == 3
    assert mixer.zones == []
    assert mixer.target_volume('kitchen') is None
    assert mixer.target_volume(AMBIENT_ZONE_ID) is None


def test_disabled_mixer_ignores_requests(mixer, backend):
    mixer.enabled = False

    mixer.start_ambient_music()
    mixer.play_zone_music('kitchen', 'kitchen.mp3')
    mixer.play_memory_music('birthday.mp3')
    mixer.play_sfx('bell.ogg')
    mixer.register_sfx_zone('fire', 'fire.ogg', 0, 0)
    mixer.wait_for_loads()
    mixer.update(1.0)

    assert backend.loops == []
    assert backend.one_shots == []
    assert mixer.zones == []
    assert mixer.active_zones == frozenset()

    mixer.enabled = True
    play_and_load(mixer, 'kitchen', 'kitchen.mp3')
    assert mixer.has_track('kitchen')


def test_update_while_disabled_does_not_ramp(mixer, backend):
    play_and_load(mixer, 'kitchen', 'kitchen.mp3')
    mixer.enabled = False
    mixer.update(1.0)
    assert backend.loops[0].volumes == [0.0]


# ==================== Ambient Ducking ====================

def test_ambient_ducks_while_any_zone_is_occupied(mixer):
    mixer.start_ambient_music()
    mixer.wait_for_loads()
    assert mixer.has_track(AMBIENT_ZONE_ID)
    assert mixer.target_volume(AMBIENT_ZONE_ID) == AudioConfig.DEFAULT_AMBIENT_VOLUME

    play_and_load(mixer, 'kitchen', 'kitchen.mp3')
    assert mixer.target_volume(AMBIENT_ZONE_ID) == 0.0

    play_and_load(mixer, 'garden', 'garden.mp3')
    mixer.fade_out_zone('kitchen')
    assert mixer.target_volume(AMBIENT_ZONE_ID) == 0.0

    mixer.fade_out_zone('garden')
    assert mixer.target_volume(AMBIENT_ZONE_ID) == AudioConfig.DEFAULT_AMBIENT_VOLUME


def test_ambient_started_inside_a_zone_starts_ducked(mixer):
    play_and_load(mixer, 'kitchen', 'kitchen.mp3')
    mixer.start_ambient_music()
    assert mixer.target_volume(AMBIENT_ZONE_ID) == 0.0
    mixer.wait_for_loads()
    assert mixer.target_volume(AMBIENT_ZONE_ID) == 0.0


def test_ambient_is_never_removed_by_fade_cleanup(mixer, backend):
    mixer.start_ambient_music()
    mixer.wait_for_loads()
    mixer.update(5.0)
    assert mixer.track(AMBIENT_ZONE_ID).current_volume == pytest.approx(AudioConfig.DEFAULT_AMBIENT_VOLUME)

    play_and_load(mixer, 'kitchen', 'kitchen.mp3')
    mixer.update(5.0)
    mixer.update(5.0)

    ambient = mixer.track(AMBIENT_ZONE_ID)
    assert ambient is not None
    assert ambient.current_volume == 0.0
    assert not backend.handles_for(music(AudioConfig.DEFAULT_AMBIENT_FILE))[0].stopped

    mixer.fade_out_zone('kitchen')
    mixer.update(0.5)
    assert mixer.track(AMBIENT_ZONE_ID).current_volume == pytest.approx(0.25)


def test_start_ambient_music_is_idempotent(mixer, backend):
    mixer.start_ambient_music()
    mixer.start_ambient_music()
    mixer.wait_for_loads()
    mixer.start_ambient_music()
    mixer.wait_for_loads()
    assert len(backend.loops) == 1


def test_ambient_load_failure_leaves_no_track(mixer, backend, caplog):
    backend.fail(music(AudioConfig.DEFAULT_AMBIENT_FILE))
    mixer.start_ambient_music()
    mixer.wait_for_loads()

    assert not mixer.has_track(AMBIENT_ZONE_ID)
    assert mixer.target_volume(AMBIENT_ZONE_ID) is None
    assert "Error playing music" in caplog.text


# ==================== One Track Per Zone ====================

def test_replaying_an_active_zone_only_retargets(mixer, backend):
    play_and_load(mixer, 'kitchen', 'kitchen.mp3', 1.0)
    mixer.update(2.0)
    mixer.fade_out_zone('kitchen')
    mixer.update(0.4)

    play_and_load(mixer, 'kitchen', 'kitchen.mp3', 1.0)

    assert len(backend.loops) == 1
    assert mixer.target_volume('kitchen') == 1.0
    assert mixer.active_zones == frozenset({'kitchen'})


def test_lowering_the_ceiling_ramps_down_without_a_jump(mixer, backend):
    mixer.master_volume = 1.0
    play_and_load(mixer, 'kitchen', 'kitchen.mp3', 1.0)
    mixer.update(2.0)

    mixer.play_zone_music('kitchen', 'kitchen.mp3', 0.5)

    track = mixer.track('kitchen')
    assert track.current_volume == pytest.approx(1.0)
    assert track.max_volume == pytest.approx(1.0)
    assert track.ceiling == 0.5
    assert mixer.target_volume('kitchen') == 0.5

    mixer.update(0.5)
    assert track.current_volume == pytest.approx(0.75)
    assert track.max_volume == pytest.approx(0.75)

    mixer.update(1.0)
    assert track.current_volume == pytest.approx(0.5)
    assert track.max_volume == pytest.approx(0.5)
    # every applied level moved by at most one ramp step
    handle = backend.handles_for(music('kitchen.mp3'))[0]
    assert handle.volumes[-3:] == pytest.approx([1.0, 0.75, 0.5])


def test_raising_the_ceiling_takes_effect_at_once(mixer):
    play_and_load(mixer, 'kitchen', 'kitchen.mp3', 0.5)
    mixer.update(2.0)
    mixer.play_zone_music('kitchen', 'kitchen.mp3', 0.9)

    mixer.update(0.5)
    track = mixer.track('kitchen')
    assert track.max_volume == 0.9
    assert track.current_volume == pytest.approx(0.75)


def test_requests_while_loading_are_deduplicated(mixer, backend):
    backend.hold()
    mixer.play_zone_music('kitchen', 'kitchen.mp3', 1.0)
    mixer.play_zone_music('kitchen', 'kitchen.mp3', 0.6)
    assert mixer.is_loading('kitchen')
    assert mixer.target_volume('kitchen') == 0.6

    backend.release()
    mixer.wait_for_loads()

    assert len(backend.loops) == 1
    assert not mixer.is_loading('kitchen')
    assert mixer.track('kitchen').max_volume == 0.6


def test_fade_out_before_load_resolves_cleans_up(mixer, backend):
    backend.hold()
    mixer.play_zone_music('kitchen', 'kitchen.mp3')
    mixer.fade_out_zone('kitchen')
    assert mixer.target_volume('kitchen') == 0.0

    backend.release()
    mixer.wait_for_loads()
    assert mixer.has_track('kitchen')

    mixer.update(0.1)
    assert not mixer.has_track('kitchen')
    assert backend.loops[0].stopped


def test_loading_zones_include_faded_out_loads(mixer, backend):
    backend.hold()
    mixer.play_zone_music('kitchen', 'kitchen.mp3')
    mixer.fade_out_zone('kitchen')

    assert mixer.active_zones == frozenset()
    assert mixer.loading_zones == frozenset({'kitchen'})

    backend.release()
    mixer.wait_for_loads()
    assert mixer.loading_zones == frozenset()


def test_stop_all_discards_loads_in_flight(mixer, backend):
    backend.hold()
    mixer.play_zone_music('kitchen', 'kitchen.mp3')
    mixer.stop_all()
    assert not mixer.is_loading('kitchen')

    backend.release()
    mixer.wait_for_loads()
    mixer.update(0.1)

    assert not mixer.has_track('kitchen')
    assert all(handle.stopped for handle in backend.loops)


def test_reserved_ambient_id_is_rejected_for_zones(mixer, backend, caplog):
    mixer.play_zone_music(AMBIENT_ZONE_ID, 'other.mp3')
    mixer.wait_for_loads()
    assert backend.loops == []
    assert AMBIENT_ZONE_ID not in mixer.active_zones
    assert "reserved" in caplog.text


# ==================== Failures and Input Handling ====================

def test_zone_load_failure_is_logged_not_raised(mixer, backend, caplog):
    backend.fail(music('missing.mp3'))
    mixer.play_zone_music('attic', 'missing.mp3')
    mixer.wait_for_loads()
    mixer.update(1.0)

    assert not mixer.has_track('attic')
    assert mixer.target_volume('attic') is None
    assert not mixer.is_loading('attic')
    assert "missing.mp3" in caplog.text


def test_out_of_range_inputs_are_clamped(mixer):
    mixer.master_volume = 1.5
    assert mixer.master_volume == 1.0
    mixer.master_volume = -0.2
    assert mixer.master_volume == 0.0
    mixer.sfx_volume = 3
    assert mixer.sfx_volume == 1.0

    play_and_load(mixer, 'kitchen', 'kitchen.mp3', 2.0)
    assert mixer.target_volume('kitchen') == 1.0

    mixer.update(-1.0)
    assert mixer.track('kitchen').current_volume == 0.0


def test_fade_out_of_unknown_zone_is_a_no_op(mixer):
    mixer.fade_out_zone('nowhere')
    assert mixer.target_volume('nowhere') is None
    assert mixer.active_zones == frozenset()


def test_volumes_stay_within_bounds_for_random_sequences(mixer):
    rng = random.Random(7)
    zones = ['kitchen', 'garden', 'attic']
    mixer.start_ambient_music()

    for _ in range(300):
        action = rng.random()
        zone_id = rng.choice(zones)
        if action < 0.3:
            mixer.play_zone_music(zone_id, f"{zone_id}.mp3", rng.uniform(-0.5, 1.5))
        elif action < 0.5:
            mixer.fade_out_zone(zone_id)
        else:
            mixer.wait_for_loads()
            mixer.update(rng.uniform(0.0, 1.0))

        for name in mixer.zones:
            track = mixer.track(name)
            assert 0.0 <= track.current_volume <= track.max_volume <= 1.0

        if mixer.active_zones:
            assert mixer.target_volume(AMBIENT_ZONE_ID) == 0.0
        elif mixer.has_track(AMBIENT_ZONE_ID):
            assert mixer.target_volume(AMBIENT_ZONE_ID) == AudioConfig.DEFAULT_AMBIENT_VOLUME


def test_occupied_zones_follow_latest_calls(mixer):
    mixer.play_zone_music('kitchen', 'kitchen.mp3')
    mixer.play_zone_music('garden', 'garden.mp3')
    mixer.fade_out_zone('kitchen')
    mixer.play_zone_music('attic', 'attic.mp3')
    mixer.fade_out_zone('attic')
    mixer.play_zone_music('kitchen', 'kitchen.mp3')
    assert mixer.active_zones == frozenset({'kitchen', 'garden'})


def test_faded_zone_is_removed_within_one_update(mixer):
    play_and_load(mixer, 'kitchen', 'kitchen.mp3')
    mixer.fade_out_zone('kitchen')
    # current volume is still zero, target now zero
    mixer.update(0.0)
    assert not mixer.has_track('kitchen')


# ==================== One-shots ====================

def test_memory_music_is_an_untracked_one_shot(mixer, backend):
    mixer.master_volume = 0.5
    mixer.play_memory_music('birthday.mp3', volume=0.8)
    mixer.wait_for_loads()

    assert backend.one_shots == [(music('birthday.mp3'), pytest.approx(0.4))]
    assert backend.loops == []
    assert mixer.zones == []


def test_memory_music_failure_is_swallowed(mixer, backend, caplog):
    backend.fail(music('broken.mp3'))
    mixer.play_memory_music('broken.mp3')
    mixer.wait_for_loads()
    assert backend.one_shots == []
    assert "broken.mp3" in caplog.text


def test_play_sfx_uses_the_sfx_channel(mixer, backend):
    mixer.master_volume = 1.0
    mixer.sfx_volume = 0.25
    mixer.play_sfx('bell.ogg')
    mixer.wait_for_loads()
    assert backend.one_shots == [(sfx('bell.ogg'), pytest.approx(0.25))]


# ==================== SFX Zones ====================

def test_looping_sfx_zone_follows_listener_distance(mixer, backend):
    mixer.master_volume = 1.0
    mixer.register_sfx_zone('fire', 'fire.ogg', 0, 0, inner_radius=10, outer_radius=110, max_volume=1.0)
    mixer.wait_for_loads()
    handle = backend.handles_for(sfx('fire.ogg'))[0]

    mixer.set_listener_position(60, 0)
    mixer.update(0.0)
    assert handle.volume == pytest.approx(0.5)

    mixer.set_listener_position(5, 0)
    mixer.update(0.0)
    assert handle.volume == pytest.approx(1.0)

    mixer.set_listener_position(500, 0)
    mixer.update(0.0)
    assert handle.volume == 0.0


def test_one_shot_sfx_zone_rearms_after_leaving(mixer, backend):
    mixer.register_sfx_zone('bell', 'bell.ogg', 0, 0, inner_radius=10, outer_radius=50, loop=False)

    mixer.set_listener_position(0, 0)
    mixer.update(0.1)
    mixer.update(0.1)
    mixer.wait_for_loads()
    assert len(backend.one_shots) == 1

    mixer.set_listener_position(100, 0)
    mixer.update(0.1)
    mixer.set_listener_position(20, 0)
    mixer.update(0.1)
    mixer.wait_for_loads()
    assert len(backend.one_shots) == 2


def test_one_shot_sfx_zone_retries_when_the_queue_is_full(mixer, backend, monkeypatch):
    mixer.register_sfx_zone('bell', 'bell.ogg', 0, 0, inner_radius=10, outer_radius=50, loop=False)
    mixer.set_listener_position(0, 0)

    monkeypatch.setattr(mixer.loader, 'enqueue_command', lambda command: False)
    mixer.update(0.1)
    assert not mixer.sfx_zone('bell').triggered

    monkeypatch.undo()
    mixer.update(0.1)
    mixer.wait_for_loads()
    assert mixer.sfx_zone('bell').triggered
    assert len(backend.one_shots) == 1


def test_unregister_sfx_zone_stops_its_loop(mixer, backend):
    mixer.register_sfx_zone('fire', 'fire.ogg', 0, 0)
    mixer.wait_for_loads()
    mixer.unregister_sfx_zone('fire')
    assert backend.loops[0].stopped
    assert mixer.sfx_zone('fire') is None


def test_failed_sfx_zone_is_dropped(mixer, backend):
    backend.fail(sfx('fire.ogg'))
    mixer.register_sfx_zone('fire', 'fire.ogg', 0, 0)
    mixer.wait_for_loads()
    assert mixer.sfx_zone('fire') is None


# ==================== Shutdown ====================

def test_dispose_stops_tracks_and_loader(backend):
    from zone_audio.audio.mixer import AudioMixer

    m = AudioMixer(backend=backend, asset_root='assets')
    m.start_ambient_music()
    m.wait_for_loads()
    m.dispose()

    assert backend.loops[0].stopped
    assert not m.loader.is_alive()
    assert m.zones == []


def test_dispose_stops_loop_that_finishes_after_shutdown(backend, monkeypatch):
    from zone_audio.audio.mixer import AudioMixer
    from zone_audio.config import LoaderConfig

    monkeypatch.setattr(LoaderConfig, 'THREAD_SHUTDOWN_TIMEOUT', 0.1)
    m = AudioMixer(backend=backend, asset_root='assets')
    backend.hold()
    m.play_zone_music('kitchen', 'kitchen.mp3')
    assert backend.loading.wait(timeout=2.0)

    m.dispose()
    assert m.loader.is_alive()

    backend.release()
    m.loader.join(timeout=2.0)

    assert not m.loader.is_alive()
    assert backend.loops[0].stopped
