# studybuddy/playback.py
"""
Voice note playback controller.

Owns at most one playback session and keeps the published state
(is_playing / current_time / duration) in step with the player. All
mutations happen on the thread that owns the controller; the position
clock is a QTimer on that thread.

Signals:
    is_playing_changed(bool)
    current_time_changed(float)
    duration_changed(float)
    state_changed(PlaybackState): emitted once per batch of field changes
    playback_failed(str): a clip could not be decoded or started
    playback_finished(): the clip ran to its end
"""
from dataclasses import dataclass
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from .audio_player import SoundFilePlayer
from .config import POLL_INTERVAL_MS
from .debug import debug_log
from .models import PlaybackState


@dataclass
class Session:
    audio: bytes
    player: Any


class PlaybackController(QObject):
    is_playing_changed = Signal(bool)
    current_time_changed = Signal(float)
    duration_changed = Signal(float)
    state_changed = Signal(object)
    playback_failed = Signal(str)
    playback_finished = Signal()

    # Player completion may arrive on another thread; this hops it back to ours.
    _player_finished = Signal(object)

    def __init__(
        self,
        player_factory: Optional[Callable[[bytes], Any]] = None,
        poll_interval_ms: int = POLL_INTERVAL_MS,
        parent=None,
    ):
        super().__init__(parent)
        self._player_factory = player_factory or SoundFilePlayer.from_bytes
        self._session: Optional[Session] = None
        self._state = PlaybackState()

        self._clock = QTimer(self)
        self._clock.setInterval(poll_interval_ms)
        self._clock.timeout.connect(self._on_tick)

        self._player_finished.connect(self._on_player_finished)

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    @property
    def current_time(self) -> float:
        return self._state.current_time

    @property
    def duration(self) -> float:
        return self._state.duration

    @property
    def has_session(self) -> bool:
        return self._session is not None

    @property
    def clock_active(self) -> bool:
        return self._clock.isActive()

    def play(self, audio: bytes) -> bool:
        """
        Start playing an encoded clip, replacing whatever was playing.

        Returns False (and emits playback_failed) if the clip can't be
        decoded or started; never raises for bad audio.
        """
        self.stop()

        player = None
        try:
            player = self._player_factory(bytes(audio))
            player.set_finished_callback(lambda p=player: self._player_finished.emit(p))
            player.play()
        except Exception as e:
            if player is not None:
                player.release()
            debug_log(f"PlaybackController: failed to play audio ({len(audio or b'')} bytes): {e}")
            self.playback_failed.emit(str(e))
            return False

        self._session = Session(audio=bytes(audio), player=player)
        self._set_state(is_playing=True, current_time=0.0, duration=float(player.duration))
        self._clock.start()
        debug_log(f"PlaybackController: playing {self._state.duration:.2f}s clip")
        return True

    def stop(self) -> None:
        self._clock.stop()

        session, self._session = self._session, None
        if session is not None:
            try:
                session.player.stop()
            except Exception as e:
                debug_log(f"PlaybackController: player stop failed: {e}")
            try:
                session.player.release()
            except Exception as e:
                debug_log(f"PlaybackController: player release failed: {e}")
            debug_log("PlaybackController: session released")

        self._set_state(is_playing=False, current_time=0.0, duration=0.0)

    def seek(self, seconds: float) -> None:
        """Jump to `seconds`. No-op without a session; range is the caller's job."""
        if self._session is None:
            return
        self._session.player.seek(seconds)
        self._set_state(current_time=float(seconds))

    def toggle(self, audio: bytes) -> None:
        if self._state.is_playing:
            self.stop()
        else:
            self.play(audio)

    def _on_tick(self) -> None:
        if self._session is None:
            self._clock.stop()
            return
        position = self._session.player.position()
        self._set_state(current_time=max(0.0, min(float(position), self._state.duration)))

    def _on_player_finished(self, player) -> None:
        if self._session is None or self._session.player is not player:
            return  # superseded session
        self._clock.stop()
        self._set_state(is_playing=False, current_time=self._state.duration)
        debug_log("PlaybackController: clip finished")
        self.playback_finished.emit()

    def _set_state(
        self,
        is_playing: Optional[bool] = None,
        current_time: Optional[float] = None,
        duration: Optional[float] = None,
    ) -> None:
        old = self._state
        new = PlaybackState(
            is_playing=old.is_playing if is_playing is None else is_playing,
            current_time=old.current_time if current_time is None else current_time,
            duration=old.duration if duration is None else duration,
        )
        if new == old:
            return
        self._state = new

        if new.is_playing != old.is_playing:
            self.is_playing_changed.emit(new.is_playing)
        if new.duration != old.duration:
            self.duration_changed.emit(new.duration)
        if new.current_time != old.current_time:
            self.current_time_changed.emit(new.current_time)
        self.state_changed.emit(new)
