import logging
import re
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

import config
from errors import BusyError, CaptureError, MalformedReplyError
from schemas import ChatTurn, Coordinate, LocationSummary, Voice
from services.audio_session import AudioSessionController
from services.conversation import ConversationState

logger = logging.getLogger(__name__)

# First fenced block, with or without a "json" tag
FENCED_BLOCK = re.compile(r"```(?:json)?[ \t]*\n([\s\S]*?)```", re.IGNORECASE)


class PipelineState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    AWAITING_TRANSCRIPTION = "awaiting_transcription"
    AWAITING_CHAT_REPLY = "awaiting_chat_reply"
    AWAITING_SYNTHESIS = "awaiting_synthesis"
    PLAYING = "playing"


def _try_parse_summary(text: str) -> Optional[LocationSummary]:
    try:
        return LocationSummary.model_validate_json(text)
    except ValidationError:
        return None


def parse_location_summary(raw: str) -> LocationSummary:
    """Parse the first assistant reply: plain JSON first, then the first fenced block."""
    summary = _try_parse_summary(raw)
    if summary is None:
        match = FENCED_BLOCK.search(raw)
        if match:
            summary = _try_parse_summary(match.group(1))
    if summary is None:
        raise MalformedReplyError("Failed to parse location JSON")
    return summary


def _discard_file(path: Path) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Could not delete %s: %s", path, e)


class TurnPipeline:
    """Runs the seed turn and the follow-up voice cycles for one location.

    Seed turn:    chat -> parse summary -> synthesize -> play
    Voice cycle:  record -> transcribe -> chat -> synthesize -> play

    Only one turn runs at a time; a second one is rejected with BusyError.
    A failed seed turn leaves the transcript untouched and raises. A failed voice
    cycle keeps whatever it already appended and never raises; its error is
    recorded in `last_error` and passed to `on_error`.
    """

    def __init__(
        self,
        provider,
        audio: AudioSessionController,
        conversation: ConversationState,
        *,
        voice: Voice = config.TTS_VOICE,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.provider = provider
        self.audio = audio
        self.conversation = conversation
        self.voice = voice
        self.on_error = on_error
        self.state = PipelineState.IDLE
        self.title = ""
        self.last_error: Optional[Exception] = None
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @asynccontextmanager
    async def _turn(self):
        if self._busy:
            raise BusyError("A turn is already in progress")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False
            self.state = PipelineState.IDLE

    def _report(self, exc: Exception) -> None:
        self.last_error = exc
        logger.warning("⚠️ Turn failed: %s", exc)
        if self.on_error is not None:
            self.on_error(exc)

    async def run_seed_turn(self, coordinate: Coordinate) -> LocationSummary:
        async with self._turn():
            user_turn = ChatTurn(role="user", content=f"Coordinates: {coordinate}")
            try:
                self.state = PipelineState.AWAITING_CHAT_REPLY
                reply = await self.provider.get_chat_reply([*self.conversation.turns, user_turn])
                summary = parse_location_summary(reply)

                self.state = PipelineState.AWAITING_SYNTHESIS
                speech_path = await self.provider.synthesize_speech(summary.description, self.voice)

                self.state = PipelineState.PLAYING
                await self.audio.play(speech_path)
            except Exception as e:
                self._report(e)
                raise

            # Only the description is kept as the assistant's context, not the name
            self.conversation.append("user", user_turn.content)
            self.conversation.append("assistant", summary.description)
            self.title = summary.name
            logger.info("📍 Loaded %s (%s)", summary.name, coordinate)
            return summary

    async def start_recording(self) -> bool:
        if self._busy:
            raise BusyError("A turn is already in progress")
        if self.state is PipelineState.RECORDING:
            return True
        # busy for the whole device setup so a second start is rejected
        self._busy = True
        try:
            await self.audio.start_recording()
        except CaptureError as e:
            self._report(e)
            return False
        finally:
            self._busy = False
        self.state = PipelineState.RECORDING
        return True

    async def finish_voice_cycle(self) -> bool:
        """Stop recording and run transcribe -> chat -> speak. Returns True on success."""
        if self._busy:
            raise BusyError("A turn is already in progress")
        if self.state is not PipelineState.RECORDING:
            return False

        async with self._turn():
            recording_path = await self.audio.stop_recording()
            if recording_path is None:
                return False

            try:
                self.state = PipelineState.AWAITING_TRANSCRIPTION
                transcript = await self.provider.transcribe_speech(recording_path)
                self.conversation.append("user", transcript)

                self.state = PipelineState.AWAITING_CHAT_REPLY
                reply = await self.provider.get_chat_reply(self.conversation.turns)
                self.conversation.append("assistant", reply)

                self.state = PipelineState.AWAITING_SYNTHESIS
                speech_path = await self.provider.synthesize_speech(reply, self.voice)

                self.state = PipelineState.PLAYING
                await self.audio.play(speech_path)
            except Exception as e:
                # the voice loop stays quiet; the error only goes to the error channel
                self._report(e)
                return False
            finally:
                _discard_file(recording_path)
            return True
