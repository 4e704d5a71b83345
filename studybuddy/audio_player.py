# studybuddy/audio_player.py
"""
In-memory audio clip player.

Decodes a whole clip with soundfile and plays it through a Qt Multimedia
QAudioSink in pull mode. This is the decode/playback primitive the
PlaybackController drives: construct from bytes, play, stop, seek, query
position/duration, get told when the clip runs out.
"""
import io
from typing import Callable, Optional, Tuple

import numpy as np
import soundfile as sf
from PySide6 import QtMultimedia
from PySide6.QtCore import QBuffer, QByteArray, QIODevice
from PySide6.QtMultimedia import QAudioFormat, QAudioSink, QMediaDevices

from .debug import debug_log

# Qt 6.7 renamed the QAudio namespace to QtAudio
_AudioState = (getattr(QtMultimedia, "QtAudio", None) or QtMultimedia.QAudio).State


class PlayerError(Exception):
    """The clip could not be turned into a playable session."""


class DecodeError(PlayerError):
    """The bytes are not a decodable audio clip."""


def decode_clip(data: bytes) -> Tuple[np.ndarray, int]:
    """
    Decode an encoded clip (WAV, FLAC, OGG, MP3... whatever libsndfile
    supports) into float32 frames shaped (n_frames, channels).
    """
    if not data:
        raise DecodeError("empty audio buffer")

    try:
        frames, samplerate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (RuntimeError, TypeError, ValueError) as e:
        raise DecodeError(f"cannot decode audio: {e}") from e

    if frames.shape[0] == 0 or samplerate <= 0:
        raise DecodeError("audio clip has no frames")
    return frames, int(samplerate)


def to_pcm16(frames: np.ndarray) -> bytes:
    clipped = np.clip(frames, -1.0, 1.0)
    return (clipped * 32767.0).astype("<i2").tobytes()


class SoundFilePlayer:
    def __init__(self, pcm: bytes, samplerate: int, channels: int):
        self._samplerate = samplerate
        self._channels = channels
        self._bytes_per_frame = 2 * channels
        self._n_frames = len(pcm) // self._bytes_per_frame
        self._duration = self._n_frames / float(samplerate)

        self._offset = 0.0  # seconds, where the current sink run started
        self._running = False
        self._finished_sent = False
        self._on_finished: Optional[Callable[[], None]] = None

        fmt = QAudioFormat()
        fmt.setSampleRate(samplerate)
        fmt.setChannelCount(channels)
        fmt.setSampleFormat(QAudioFormat.SampleFormat.Int16)

        device = QMediaDevices.defaultAudioOutput()
        if device.isNull():
            raise PlayerError("no audio output device")
        if not device.isFormatSupported(fmt):
            raise PlayerError(f"output device does not support {samplerate}Hz/{channels}ch int16")

        self._data = QByteArray(pcm)
        self._buffer: Optional[QBuffer] = QBuffer()
        self._buffer.setData(self._data)
        self._buffer.open(QIODevice.OpenModeFlag.ReadOnly)

        self._sink: Optional[QAudioSink] = QAudioSink(device, fmt)
        self._sink.stateChanged.connect(self._on_state_changed)

    @classmethod
    def from_bytes(cls, data: bytes) -> "SoundFilePlayer":
        frames, samplerate = decode_clip(data)
        player = cls(to_pcm16(frames), samplerate, frames.shape[1])
        debug_log(
            f"SoundFilePlayer: decoded {frames.shape[0]} frames @ {samplerate}Hz, "
            f"{frames.shape[1]}ch ({player.duration:.2f}s)"
        )
        return player

    @property
    def duration(self) -> float:
        return self._duration

    def set_finished_callback(self, callback: Optional[Callable[[], None]]) -> None:
        self._on_finished = callback

    def play(self) -> None:
        if self._sink is None or self._running:
            return
        if self._offset >= self._duration:
            self._offset = 0.0
        self._start_at(self._offset)

    def stop(self) -> None:
        if self._sink is None:
            return
        self._offset = self.position()
        self._running = False
        self._sink.stop()

    def seek(self, seconds: float) -> None:
        if self._sink is None:
            return
        target = max(0.0, min(float(seconds), self._duration))
        if self._running:
            self._running = False
            self._sink.stop()
            self._start_at(target)
        else:
            self._offset = target
            self._buffer.seek(self._byte_offset(target))

    def position(self) -> float:
        if self._sink is None:
            return 0.0
        if not self._running:
            return self._offset
        elapsed = self._sink.processedUSecs() / 1_000_000.0
        return min(self._offset + elapsed, self._duration)

    def is_playing(self) -> bool:
        return self._running

    def release(self) -> None:
        if self._sink is None:
            return
        self._running = False
        self._on_finished = None
        try:
            self._sink.stateChanged.disconnect(self._on_state_changed)
        except (RuntimeError, TypeError):
            pass
        self._sink.stop()
        self._buffer.close()
        self._sink.deleteLater()
        self._sink = None
        self._buffer = None
        self._data = None

    def _byte_offset(self, seconds: float) -> int:
        frame = min(int(round(seconds * self._samplerate)), self._n_frames)
        return frame * self._bytes_per_frame

    def _start_at(self, seconds: float) -> None:
        self._offset = seconds
        self._buffer.seek(self._byte_offset(seconds))
        self._finished_sent = False
        self._running = True
        self._sink.start(self._buffer)

    def _on_state_changed(self, state) -> None:
        if state != _AudioState.IdleState or not self._running:
            return
        if self._buffer is None or not self._buffer.atEnd():
            return  # underrun, more data is coming
        self._running = False
        self._offset = self._duration
        self._sink.stop()
        if not self._finished_sent:
            self._finished_sent = True
            if self._on_finished:
                self._on_finished()
