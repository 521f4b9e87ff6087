import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from errors import CaptureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioMode:
    allows_recording: bool
    plays_in_silent_mode: bool = True
    duck_others: bool = False
    stays_active_in_background: bool = False
    play_through_earpiece: bool = False


PLAYBACK_MODE = AudioMode(allows_recording=False, plays_in_silent_mode=True, duck_others=True)
RECORDING_MODE = AudioMode(allows_recording=True, plays_in_silent_mode=True)


# --------- Protocols ---------
class Sound(Protocol):
    def stop(self) -> None: ...
    def unload(self) -> None: ...


class Recording(Protocol):
    def stop_and_unload(self) -> None: ...
    def get_uri(self) -> Optional[str]: ...


class AudioBackend(Protocol):
    """Platform audio: permissions, session mode, playback and capture."""

    def request_permission(self) -> bool: ...
    def set_audio_mode(self, mode: AudioMode) -> None: ...
    def create_sound(self, path: Path) -> Sound: ...
    """
    Load `path` and start playing it without waiting for playback to finish.
    """
    def start_recording(self) -> Recording: ...


class AudioSessionController:
    """Owns at most one playing sound and one active recording.

    Backend calls can block (decoding, opening devices) so they run in a worker
    thread. Every release step is best-effort: a failing stop never prevents the
    next release step.
    """

    def __init__(self, backend: AudioBackend):
        self._backend = backend
        self._sound: Optional[Sound] = None
        self._recording: Optional[Recording] = None
        self._starting = False
        self._generation = 0

    @property
    def sound(self) -> Optional[Sound]:
        return self._sound

    @property
    def is_recording(self) -> bool:
        return self._recording is not None

    @property
    def is_starting(self) -> bool:
        return self._starting

    async def play(self, file_path) -> Sound:
        await self.stop_sound()
        await asyncio.to_thread(self._backend.set_audio_mode, PLAYBACK_MODE)
        sound = await asyncio.to_thread(self._backend.create_sound, Path(file_path))
        self._sound = sound
        return sound

    async def stop_sound(self) -> None:
        sound, self._sound = self._sound, None
        if sound is None:
            return
        try:
            await asyncio.to_thread(sound.stop)
        except Exception as e:
            logger.debug("Stopping sound failed: %s", e)
        try:
            await asyncio.to_thread(sound.unload)
        except Exception as e:
            logger.debug("Unloading sound failed: %s", e)

    async def start_recording(self) -> None:
        if self._recording is not None or self._starting:
            raise CaptureError("A recording is already active")
        # claim the slot before the first await; teardown bumps the generation
        self._starting = True
        generation = self._generation
        try:
            granted = await asyncio.to_thread(self._backend.request_permission)
            if not granted:
                raise CaptureError("Microphone permission denied")
            await asyncio.to_thread(self._backend.set_audio_mode, RECORDING_MODE)
            recording = await asyncio.to_thread(self._backend.start_recording)
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureError(f"Could not start recording: {e}") from e
        finally:
            self._starting = False

        if generation != self._generation:
            await self._release_recording(recording)
            raise CaptureError("Audio session was torn down while the recording was starting")
        self._recording = recording
        logger.info("🎙️ Recording started")

    async def stop_recording(self) -> Optional[Path]:
        """Finalize the active recording. None if nothing was recording or finalizing failed."""
        recording, self._recording = self._recording, None
        if recording is None:
            return None
        try:
            await asyncio.to_thread(recording.stop_and_unload)
            uri = recording.get_uri()
        except Exception as e:
            logger.warning("Stopping recording failed: %s", e)
            return None
        logger.info("🎙️ Recording stopped: %s", uri)
        return Path(uri) if uri else None

    async def _release_recording(self, recording: Recording) -> None:
        """Stop a recording nobody will transcribe and delete whatever it wrote."""
        try:
            await asyncio.to_thread(recording.stop_and_unload)
        except Exception as e:
            logger.debug("Releasing recording failed: %s", e)
        try:
            uri = recording.get_uri()
            if uri:
                Path(uri).unlink(missing_ok=True)
        except Exception as e:
            logger.debug("Deleting recording failed: %s", e)

    async def teardown(self) -> None:
        self._generation += 1
        await self.stop_sound()
        recording, self._recording = self._recording, None
        if recording is not None:
            await self._release_recording(recording)
