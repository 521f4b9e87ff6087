"""Audio backend for the local machine: sounddevice for speaker and microphone,
pydub to decode the MP3 replies, soundfile to write recordings as WAV.
"""
import logging
import time
from pathlib import Path
from typing import List, Optional

import numpy as np
import sounddevice as sd
import soundfile as sf
from pydub import AudioSegment

import config
from services.audio_session import AudioMode

logger = logging.getLogger(__name__)


class DeviceSound:
    """An MP3 decoded into memory and started on the default output device."""

    def __init__(self, path: Path):
        segment = AudioSegment.from_file(str(path))
        samples = np.array(segment.get_array_of_samples(), dtype=np.float32)
        # int PCM -> float32 in [-1, 1]
        samples /= float(1 << (8 * segment.sample_width - 1))
        self._samples: Optional[np.ndarray] = samples.reshape(-1, segment.channels)
        self.path = path
        sd.play(self._samples, segment.frame_rate)  # returns immediately

    def stop(self) -> None:
        sd.stop()

    def unload(self) -> None:
        self._samples = None


class DeviceRecording:
    """Captures int16 frames from the default input device until stopped."""

    def __init__(self, path: Path, samplerate: int, channels: int):
        self.path = path
        self.samplerate = samplerate
        self._frames: List[np.ndarray] = []
        self._uri: Optional[str] = None
        self._stream = sd.InputStream(
            samplerate=samplerate,
            channels=channels,
            dtype="int16",
            callback=self._callback,
        )
        self._stream.start()

    def _callback(self, indata, frames, time_info, status):
        if status:
            logger.debug("Input stream status: %s", status)
        self._frames.append(indata.copy())

    def stop_and_unload(self) -> None:
        try:
            self._stream.stop()
        finally:
            self._stream.close()
        if not self._frames:
            return
        data = np.concatenate(self._frames)
        self._frames = []
        try:
            sf.write(str(self.path), data, self.samplerate)
        except Exception:
            # never leave a half-written WAV behind
            self.path.unlink(missing_ok=True)
            raise
        self._uri = str(self.path)

    def get_uri(self) -> Optional[str]:
        return self._uri


class SoundDeviceBackend:
    def __init__(
        self,
        cache_dir: Path = config.AUDIO_CACHE_DIR,
        samplerate: int = config.RECORDING_SAMPLE_RATE,
        channels: int = config.RECORDING_CHANNELS,
    ):
        self.cache_dir = Path(cache_dir)
        self.samplerate = samplerate
        self.channels = channels
        self.mode: Optional[AudioMode] = None

    def request_permission(self) -> bool:
        # Desktop audio has no permission prompt; an unusable input device is the denial
        try:
            sd.check_input_settings(samplerate=self.samplerate, channels=self.channels)
        except (sd.PortAudioError, ValueError) as e:
            logger.warning("Microphone unavailable: %s", e)
            return False
        return True

    def set_audio_mode(self, mode: AudioMode) -> None:
        self.mode = mode
        logger.debug("Audio mode: %s", mode)

    def create_sound(self, path: Path) -> DeviceSound:
        return DeviceSound(path)

    def start_recording(self) -> DeviceRecording:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self.cache_dir / f"recording-{time.time_ns()}.wav"
        return DeviceRecording(path, self.samplerate, self.channels)
