"""
Tests for PlaybackController.

Uses a fake player so transport, clock and completion behavior can be
driven without an audio device.
"""
import time

import pytest

from studybuddy.audio_player import DecodeError
from studybuddy.models import PlaybackState
from studybuddy.playback import PlaybackController


class FakePlayer:
    def __init__(self, data: bytes, duration: float = 120.0):
        self.data = data
        self.duration = duration
        self.playing = False
        self.released = False
        self.seeks = []
        self._base = 0.0
        self._started = 0.0
        self._on_finished = None

    def set_finished_callback(self, callback):
        self._on_finished = callback

    def play(self):
        self.playing = True
        self._started = time.monotonic()

    def stop(self):
        self._base = self.position()
        self.playing = False

    def seek(self, seconds):
        self.seeks.append(seconds)
        self._base = seconds
        self._started = time.monotonic()

    def position(self):
        if not self.playing:
            return self._base
        return min(self._base + time.monotonic() - self._started, self.duration)

    def release(self):
        self.released = True

    def finish(self):
        self.playing = False
        self._base = self.duration
        self._on_finished()


class FakeFactory:
    def __init__(self, duration: float = 120.0):
        self.duration = duration
        self.players = []

    def __call__(self, data: bytes):
        if not data or data.startswith(b"garbage"):
            raise DecodeError("cannot decode audio")
        player = FakePlayer(data, self.duration)
        self.players.append(player)
        return player


@pytest.fixture
def factory():
    return FakeFactory()


@pytest.fixture
def controller(qapp, factory):
    c = PlaybackController(player_factory=factory, poll_interval_ms=100)
    yield c
    c.stop()


# =============================================================================
# play
# =============================================================================

class TestPlay:
    def test_valid_clip_starts_playing(self, controller):
        assert controller.play(b"clip") is True
        assert controller.is_playing is True
        assert controller.duration == 120.0
        assert controller.current_time == pytest.approx(0.0, abs=0.05)
        assert controller.has_session
        assert controller.clock_active

    def test_invalid_clip_stays_idle(self, controller):
        failures = []
        controller.playback_failed.connect(failures.append)

        assert controller.play(b"garbage bytes") is False

        assert controller.state == PlaybackState(False, 0.0, 0.0)
        assert not controller.has_session
        assert not controller.clock_active
        assert failures == ["cannot decode audio"]

    def test_empty_buffer_is_a_decode_failure(self, controller):
        assert controller.play(b"") is False
        assert controller.state == PlaybackState()

    def test_failed_play_tears_down_previous_session(self, controller, factory):
        controller.play(b"first")
        controller.play(b"garbage")

        assert factory.players[0].released
        assert controller.state == PlaybackState()

    def test_play_supersedes_previous_session(self, controller, factory):
        controller.play(b"first")
        controller.play(b"second")

        first, second = factory.players
        assert first.released and not first.playing
        assert not second.released
        assert controller.has_session
        assert controller.is_playing

    def test_player_start_failure_releases_player(self, qapp):
        class Exploding(FakePlayer):
            def play(self):
                raise RuntimeError("device busy")

        created = []

        def make(data):
            created.append(Exploding(data))
            return created[-1]

        c = PlaybackController(player_factory=make)
        assert c.play(b"clip") is False
        assert created[0].released
        assert c.state == PlaybackState()

    def test_state_changed_published(self, controller):
        states = []
        controller.state_changed.connect(states.append)

        controller.play(b"clip")

        assert states[-1].is_playing is True
        assert states[-1].duration == 120.0


# =============================================================================
# stop
# =============================================================================

class TestStop:
    def test_stop_resets_state_and_releases(self, controller, factory):
        controller.play(b"clip")
        controller.stop()

        assert controller.state == PlaybackState(False, 0.0, 0.0)
        assert factory.players[0].released
        assert not controller.clock_active

    def test_stop_is_idempotent(self, controller):
        controller.play(b"clip")
        controller.stop()
        first = controller.state
        controller.stop()
        assert controller.state == first

    def test_stop_without_session(self, controller):
        changes = []
        controller.state_changed.connect(changes.append)
        controller.stop()
        assert controller.state == PlaybackState()
        assert changes == []

    def test_release_happens_even_if_player_stop_raises(self, qapp):
        class BadStop(FakePlayer):
            def stop(self):
                raise RuntimeError("boom")

        players = []

        def make(data):
            players.append(BadStop(data))
            return players[-1]

        c = PlaybackController(player_factory=make)
        c.play(b"clip")
        c.stop()
        assert players[0].released
        assert not c.has_session
        assert c.state == PlaybackState()

    def test_play_replaces_session_whose_stop_fails(self, qapp):
        class DeviceGone(FakePlayer):
            def stop(self):
                raise RuntimeError("device gone")

        players = []

        def make(data):
            cls = DeviceGone if not players else FakePlayer
            players.append(cls(data))
            return players[-1]

        c = PlaybackController(player_factory=make)
        assert c.play(b"first") is True
        assert c.play(b"second") is True

        first, second = players
        assert first.released
        assert c.has_session
        assert c.is_playing
        assert c.duration == 120.0
        assert c.clock_active
        c.stop()
        assert second.released


# =============================================================================
# seek
# =============================================================================

class TestSeek:
    def test_seek_without_session_is_noop(self, controller):
        controller.seek(5.0)
        assert controller.state == PlaybackState()

    def test_seek_after_stop_is_noop(self, controller, factory):
        controller.play(b"clip")
        controller.stop()
        controller.seek(5.0)

        assert controller.state == PlaybackState()
        assert factory.players[0].seeks == []

    def test_seek_updates_current_time_immediately(self, controller, factory):
        controller.play(b"clip")
        controller.seek(42.5)

        assert controller.current_time == 42.5
        assert factory.players[0].seeks == [42.5]

    def test_seek_forwards_out_of_range_values(self, controller, factory):
        controller.play(b"clip")
        controller.seek(500.0)
        assert factory.players[0].seeks == [500.0]


# =============================================================================
# clock and completion
# =============================================================================

class TestClock:
    def test_clock_advances_current_time(self, controller):
        from PySide6.QtTest import QTest

        controller.play(b"clip")
        QTest.qWait(350)

        assert controller.current_time > 0.0
        assert controller.current_time <= controller.duration

    def test_tick_clamps_to_duration(self, qapp):
        factory = FakeFactory(duration=1.0)
        c = PlaybackController(player_factory=factory)
        c.play(b"clip")
        factory.players[0].position = lambda: 3.0
        c._on_tick()
        assert c.current_time == 1.0
        c.stop()


class TestCompletion:
    def test_natural_completion_stops_clock_and_keeps_session(self, controller, factory):
        finished = []
        controller.playback_finished.connect(lambda: finished.append(True))
        controller.play(b"clip")

        factory.players[0].finish()

        assert finished == [True]
        assert controller.is_playing is False
        assert controller.duration == 120.0
        assert controller.current_time == 120.0
        assert controller.has_session
        assert not controller.clock_active

    def test_seek_after_completion_still_works(self, controller, factory):
        controller.play(b"clip")
        factory.players[0].finish()
        controller.seek(10.0)
        assert controller.current_time == 10.0

    def test_stop_after_completion_returns_to_idle(self, controller, factory):
        controller.play(b"clip")
        factory.players[0].finish()
        controller.stop()
        assert controller.state == PlaybackState()
        assert factory.players[0].released

    def test_stale_completion_is_ignored(self, controller, factory):
        controller.play(b"first")
        controller.play(b"second")

        factory.players[0]._on_finished()

        assert controller.is_playing is True
        assert controller.clock_active


class TestToggle:
    def test_toggle_plays_then_stops(self, controller):
        controller.toggle(b"clip")
        assert controller.is_playing
        controller.toggle(b"clip")
        assert controller.state == PlaybackState()
