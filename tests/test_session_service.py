import asyncio
import pytest

from errors import BusyError
from schemas import Coordinate
from services.session_service import LocationScreen
from tests.conftest import paris_reply


PARIS = Coordinate(latitude=48.8566, longitude=2.3522)


@pytest.fixture
def screen(provider, audio):
    return LocationScreen(PARIS, provider, audio)


class TestLocationScreen:
    def test_title_states(self, screen, provider):
        assert screen.display_title == "Location"
        provider.chat_replies = [paris_reply()]
        asyncio.run(screen.load())
        assert screen.display_title == "Paris"

    def test_back_rejected_while_recording_starts(self, screen, backend):
        backend.permission_delay = 0.1

        async def run():
            talk = asyncio.create_task(screen.toggle_talk())
            await asyncio.sleep(0.02)
            with pytest.raises(BusyError):
                await screen.go_back()
            await talk

        asyncio.run(run())
        assert screen.is_talking
        assert len(backend.recordings) == 1

    def test_closing_during_start_leaves_device_usable(self, screen, provider, audio, backend):
        backend.permission_delay = 0.1

        async def run():
            talk = asyncio.create_task(screen.toggle_talk())
            await asyncio.sleep(0.02)
            await screen.close()
            await talk
            backend.permission_delay = 0.0
            next_screen = LocationScreen(PARIS, provider, audio)
            return await next_screen.pipeline.start_recording()

        assert asyncio.run(run()) is True
        first, second = backend.recordings
        assert first.stopped
        assert not first.path.exists()
        assert not second.stopped
        assert not screen.is_talking
