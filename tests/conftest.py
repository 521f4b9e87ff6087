import json
import time
import pytest
from pathlib import Path

from services.audio_session import AudioSessionController


class FakeSound:
    def __init__(self, path, events):
        self.path = path
        self.events = events
        self.stopped = False
        self.unloaded = False

    def stop(self):
        self.stopped = True
        self.events.append(("stop", self.path))

    def unload(self):
        self.unloaded = True
        self.events.append(("unload", self.path))


class FakeRecording:
    """Writes a small file when stopped, like a real capture would."""

    def __init__(self, path: Path, produce_file: bool = True):
        self.path = path
        self.produce_file = produce_file
        self.stopped = False
        self._uri = None

    def stop_and_unload(self):
        self.stopped = True
        if self.produce_file:
            self.path.write_bytes(b"RIFF fake wav")
            self._uri = str(self.path)

    def get_uri(self):
        return self._uri


class FakeAudioBackend:
    def __init__(self, tmp_path: Path):
        self.tmp_path = tmp_path
        self.events = []
        self.modes = []
        self.sounds = []
        self.recordings = []
        self.permission = True
        self.permission_delay = 0.0
        self.produce_file = True
        self._count = 0

    def request_permission(self):
        if self.permission_delay:
            time.sleep(self.permission_delay)  # runs in a worker thread, like a real prompt
        return self.permission

    def set_audio_mode(self, mode):
        self.modes.append(mode)

    def create_sound(self, path):
        sound = FakeSound(path, self.events)
        self.events.append(("play", path))
        self.sounds.append(sound)
        return sound

    def start_recording(self):
        self._count += 1
        recording = FakeRecording(self.tmp_path / f"recording-{self._count}.wav", self.produce_file)
        self.recordings.append(recording)
        return recording


class FakeProvider:
    """Scripted stand-in for ProviderClient. Queue entries may be exceptions."""

    def __init__(self, tmp_path: Path):
        self.tmp_path = tmp_path
        self.chat_replies = []
        self.transcripts = []
        self.synthesis_error = None
        self.chat_calls = []
        self.synthesized = []
        self.transcribed = []
        self.closed = False

    async def get_chat_reply(self, transcript):
        self.chat_calls.append(list(transcript))
        reply = self.chat_replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def synthesize_speech(self, text, voice="nova"):
        if self.synthesis_error is not None:
            raise self.synthesis_error
        path = self.tmp_path / f"speech-{len(self.synthesized)}.mp3"
        path.write_bytes(b"ID3")
        self.synthesized.append((text, voice, path))
        return path

    async def transcribe_speech(self, file_path):
        self.transcribed.append(Path(file_path))
        text = self.transcripts.pop(0)
        if isinstance(text, Exception):
            raise text
        return text

    async def aclose(self):
        self.closed = True


def paris_reply(description: str = "The City of Light.") -> str:
    return json.dumps({"name": "Paris", "description": description})


@pytest.fixture
def backend(tmp_path):
    return FakeAudioBackend(tmp_path)


@pytest.fixture
def audio(backend):
    return AudioSessionController(backend)


@pytest.fixture
def provider(tmp_path):
    return FakeProvider(tmp_path)
