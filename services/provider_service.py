import asyncio
import logging
import mimetypes
import time
import uuid
from pathlib import Path
from typing import Optional, Sequence

import httpx

import config
from errors import EmptyReplyError, MissingFileError, ProviderError
from schemas import ChatTurn, Voice

logger = logging.getLogger(__name__)


class ProviderClient:
    """Chat completion, speech synthesis and transcription over the OpenAI API.

    Each call is a single request with no retry. When a `chat_backend` is given
    (e.g. the Gemini variant), chat replies are delegated to it while speech stays
    on the OpenAI endpoints.
    """

    def __init__(
        self,
        api_key: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = config.OPENAI_BASE_URL,
        cache_dir: Path = config.AUDIO_CACHE_DIR,
        chat_model: str = config.CHAT_MODEL,
        temperature: float = config.CHAT_TEMPERATURE,
        max_tokens: Optional[int] = config.CHAT_MAX_TOKENS,
        tts_model: str = config.TTS_MODEL,
        stt_model: str = config.STT_MODEL,
        chat_backend=None,
    ):
        self._api_key = api_key
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient()
        self.base_url = base_url.rstrip("/")
        self.cache_dir = Path(cache_dir)
        self.chat_model = chat_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.tts_model = tts_model
        self.stt_model = stt_model
        self.chat_backend = chat_backend

    @classmethod
    def from_env(cls, **kwargs) -> "ProviderClient":
        """Resolve credentials once at startup. Raises MissingCredentialError."""
        api_key = config.get_api_key("OPENAI_API_KEY")
        if config.CHAT_PROVIDER == "gemini" and "chat_backend" not in kwargs:
            from services.llm_service import GeminiChat

            kwargs["chat_backend"] = GeminiChat(config.get_api_key("GEMINI_API_KEY"))
        return cls(api_key, **kwargs)

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    async def get_chat_reply(self, transcript: Sequence[ChatTurn]) -> str:
        if self.chat_backend is not None:
            return await self.chat_backend.get_chat_reply(transcript)

        payload = {
            "model": self.chat_model,
            "messages": [turn.model_dump() for turn in transcript],
            "temperature": self.temperature,
        }
        if self.max_tokens:
            payload["max_tokens"] = self.max_tokens

        resp = await self._http.post(f"{self.base_url}/chat/completions", json=payload, headers=self._headers())
        if not resp.is_success:
            raise ProviderError("OpenAI Chat", resp.status_code, resp.text)

        try:
            data = resp.json()
            text = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            text = None
        if not isinstance(text, str) or not text.strip():
            raise EmptyReplyError("No content")
        return text.strip()

    async def synthesize_speech(self, text: str, voice: Voice = "nova") -> Path:
        """Generates MP3 audio for `text` and returns the path of the written file"""
        payload = {"model": self.tts_model, "voice": voice, "input": text, "response_format": "mp3"}
        resp = await self._http.post(f"{self.base_url}/audio/speech", json=payload, headers=self._headers())
        if not resp.is_success:
            raise ProviderError("OpenAI TTS", resp.status_code, resp.text)

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        # timestamp plus a random suffix so rapid successive turns never collide
        path = self.cache_dir / f"speech-{time.time_ns()}-{uuid.uuid4().hex[:8]}.mp3"
        await asyncio.to_thread(path.write_bytes, resp.content)
        logger.debug("Wrote %d bytes of speech to %s", len(resp.content), path)
        return path

    async def transcribe_speech(self, file_path) -> str:
        path = Path(file_path)
        if not path.is_file():
            raise MissingFileError(path)

        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        content = await asyncio.to_thread(path.read_bytes)
        files = {"file": (path.name, content, content_type)}
        resp = await self._http.post(
            f"{self.base_url}/audio/transcriptions",
            data={"model": self.stt_model},
            files=files,
            headers=self._headers(),
        )
        if not resp.is_success:
            raise ProviderError("OpenAI STT", resp.status_code, resp.text)

        try:
            text = resp.json().get("text")
        except (ValueError, AttributeError):
            text = None
        if not isinstance(text, str) or not text.strip():
            raise EmptyReplyError("No transcript")
        return text.strip()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()
