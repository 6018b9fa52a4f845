import wave
from pathlib import Path
from typing import Optional
import numpy as np
try:
    import pyaudio
except Exception as e:
    pyaudio = None
    _PA_IMPORT_ERROR = e

from .errors import AudioError


class AlertSound:
    """
    16-bit PCM WAV played through a PyAudio callback stream.
    The file and the output device are acquired lazily on the first play,
    so a missing device shows up as an AudioError from play(), not at
    construction time.
    """
    def __init__(self, path: Path, volume: float = 1.0):
        self.path = Path(path)
        self.volume = float(volume)
        self._pa = None
        self._stream = None
        self._samples: Optional[np.ndarray] = None  # (frames, channels) int16
        self._rate = 0
        self._pos = 0

    def _load(self):
        if pyaudio is None:
            raise AudioError(f"pyaudio import failed: {_PA_IMPORT_ERROR}", "Audio backend missing (pip install pyaudio).")
        try:
            with wave.open(str(self.path), "rb") as wf:
                if wf.getsampwidth() != 2:
                    raise AudioError(f"{self.path}: only 16-bit PCM is supported", "Alert sound format not supported.")
                channels = wf.getnchannels()
                self._rate = wf.getframerate()
                raw = wf.readframes(wf.getnframes())
        except (OSError, wave.Error, EOFError) as e:
            raise AudioError(f"cannot read alert sound {self.path}: {e}", "Alert sound file missing or unreadable.") from e
        self._samples = np.frombuffer(raw, dtype=np.int16).reshape(-1, channels)

    def _ensure_stream(self):
        if self._stream is not None:
            return
        if self._samples is None:
            self._load()
        try:
            self._pa = pyaudio.PyAudio()
            self._stream = self._pa.open(
                format=pyaudio.paInt16,
                channels=self._samples.shape[1],
                rate=self._rate,
                output=True,
                start=False,
                stream_callback=self._callback,
            )
        except OSError as e:
            self.close()
            raise AudioError(f"audio output unavailable: {e}", "Audio output device unavailable.") from e

    def _callback(self, in_data, frame_count, time_info, status):
        start, end = self._pos, self._pos + frame_count
        chunk = self._samples[start:end]
        self._pos = min(end, len(self._samples))

        out = (chunk.astype(np.float32) * self.volume).clip(-32768, 32767).astype(np.int16)
        if len(out) < frame_count:
            pad = np.zeros((frame_count - len(out), self._samples.shape[1]), dtype=np.int16)
            return (np.concatenate([out, pad]).tobytes(), pyaudio.paComplete)
        return (out.tobytes(), pyaudio.paContinue)

    def rewind(self):
        self._pos = 0

    def play(self):
        self._ensure_stream()
        try:
            if not self._stream.is_stopped():
                self._stream.stop_stream()
            self._stream.start_stream()
        except OSError as e:
            raise AudioError(f"playback failed: {e}", "Alert sound playback failed.") from e

    def pause(self):
        if self._stream is None:
            return
        try:
            if not self._stream.is_stopped():
                self._stream.stop_stream()
        except OSError as e:
            raise AudioError(f"pause failed: {e}", "Alert sound playback failed.") from e

    def close(self):
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        if self._pa is not None:
            self._pa.terminate()
            self._pa = None
