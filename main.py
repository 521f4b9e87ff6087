import logging
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

import config
from errors import BusyError
from schemas import CoordinatesRequest, CoordinatesResponse, ScreenResponse
from services.audio_session import AudioSessionController
from services.coordinate_service import parse_coordinates
from services.provider_service import ProviderClient
from services.session_service import LocationScreen

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("main")


def default_audio_controller() -> AudioSessionController:
    # sounddevice needs PortAudio at import time, so only load it when serving
    from services.audio_device import SoundDeviceBackend

    return AudioSessionController(SoundDeviceBackend())


def create_app(provider_factory=ProviderClient.from_env, audio_factory=default_audio_controller) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Resolve credentials and open the audio device before serving anything"""
        app.state.provider = provider_factory()
        app.state.audio = audio_factory()
        app.state.screen = None
        logger.info("🚀 Travel guide ready")
        yield
        if app.state.screen is not None:
            await app.state.screen.close()
        await app.state.provider.aclose()
        logger.info("🛑 Travel guide stopped")

    app = FastAPI(title="AI Travel Assistant", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # local device app
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def current_screen(request: Request) -> LocationScreen:
        screen = request.app.state.screen
        if screen is None:
            raise HTTPException(status_code=404, detail="No location open")
        return screen

    @app.get("/")
    def health_check():
        return {"status": "ok", "message": "Travel Guide Backend is Running"}

    @app.post("/coordinates", response_model=CoordinatesResponse)
    def coordinates_endpoint(request: CoordinatesRequest):
        """Home screen: validate the typed text without opening anything"""
        coordinate = parse_coordinates(request.text)
        if coordinate is None:
            raise HTTPException(status_code=422, detail="Invalid coordinates")
        return CoordinatesResponse(coords=str(coordinate), latitude=coordinate.latitude, longitude=coordinate.longitude)

    @app.post("/location", response_model=ScreenResponse)
    async def open_location(body: CoordinatesRequest, request: Request):
        coordinate = parse_coordinates(body.text)
        if coordinate is None:
            raise HTTPException(status_code=422, detail="Invalid coordinates")

        state = request.app.state
        if state.screen is not None:
            if state.screen.loading or state.screen.pipeline.busy or state.screen.is_talking:
                raise HTTPException(status_code=409, detail="Current location is busy")
            await state.screen.close()

        screen = LocationScreen(coordinate, state.provider, state.audio)
        state.screen = screen
        await screen.load()
        return screen.snapshot()

    @app.get("/location", response_model=ScreenResponse)
    def get_location(request: Request):
        return current_screen(request).snapshot()

    @app.post("/location/talk", response_model=ScreenResponse)
    async def talk(request: Request):
        screen = current_screen(request)
        try:
            await screen.toggle_talk()
        except BusyError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return screen.snapshot()

    @app.post("/location/back")
    async def go_back(request: Request):
        screen = current_screen(request)
        try:
            await screen.go_back()
        except BusyError as e:
            raise HTTPException(status_code=409, detail=str(e))
        request.app.state.screen = None
        return {"status": "ok"}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host=config.HOST, port=config.PORT, reload=True)
