import logging
from typing import Optional

from errors import BusyError
from schemas import Coordinate, ScreenResponse
from services.audio_session import AudioSessionController
from services.conversation import ConversationState
from services.pipeline_service import PipelineState, TurnPipeline

logger = logging.getLogger(__name__)


class LocationScreen:
    """State of the location screen: one coordinate, one transcript, one audio session."""

    def __init__(self, coordinate: Coordinate, provider, audio: AudioSessionController):
        self.coordinate = coordinate
        self.audio = audio
        self.conversation = ConversationState()
        self.pipeline = TurnPipeline(provider, audio, self.conversation)
        self.loading = False
        self.error: Optional[str] = None

    @property
    def is_talking(self) -> bool:
        return self.pipeline.state is PipelineState.RECORDING

    @property
    def chat_loading(self) -> bool:
        return self.pipeline.busy and not self.loading

    @property
    def display_title(self) -> str:
        if self.pipeline.title:
            return self.pipeline.title
        if self.loading:
            return "Loading…"
        if self.error:
            return "Error"
        return "Location"

    async def load(self) -> None:
        """Run the seed turn; any failure becomes the screen's error message."""
        self.loading = True
        self.error = None
        try:
            await self.pipeline.run_seed_turn(self.coordinate)
        except Exception as e:
            self.error = str(e) or "Failed to load"
        finally:
            self.loading = False

    async def toggle_talk(self) -> None:
        if self.loading or self.pipeline.busy:
            raise BusyError("Busy, try again when the reply has finished")
        if not self.is_talking:
            await self.pipeline.start_recording()
            return
        await self.pipeline.finish_voice_cycle()

    async def go_back(self) -> None:
        if self.is_talking or self.loading or self.pipeline.busy or self.audio.is_starting:
            raise BusyError("Cannot leave while recording or loading")
        await self.close()

    async def close(self) -> None:
        await self.audio.teardown()
        logger.info("👋 Closed location %s", self.coordinate)

    def snapshot(self) -> ScreenResponse:
        return ScreenResponse(
            title=self.display_title,
            state="error" if self.error else self.pipeline.state.value,
            loading=self.loading,
            chat_loading=self.chat_loading,
            is_talking=self.is_talking,
            error=self.error,
            messages=self.conversation.visible_turns(),
        )
