import logging
from typing import Optional, Sequence

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

import config
from errors import EmptyReplyError, ProviderError
from schemas import ChatTurn

logger = logging.getLogger(__name__)


def to_gemini_contents(transcript: Sequence[ChatTurn]):
    """Split a transcript into (system_instruction, contents) for Gemini.

    Gemini has no system role in `contents`, and calls the assistant "model".
    """
    system = "\n\n".join(turn.content for turn in transcript if turn.role == "system")
    contents = [
        {"role": "model" if turn.role == "assistant" else "user", "parts": [turn.content]}
        for turn in transcript
        if turn.role != "system"
    ]
    return system or None, contents


class GeminiChat:
    """Chat replies from Gemini, used when CHAT_PROVIDER=gemini."""

    def __init__(
        self,
        api_key: str,
        model_name: str = config.GEMINI_MODEL,
        temperature: float = config.CHAT_TEMPERATURE,
        max_tokens: Optional[int] = config.CHAT_MAX_TOKENS,
    ):
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def get_chat_reply(self, transcript: Sequence[ChatTurn]) -> str:
        system_instruction, contents = to_gemini_contents(transcript)
        model = genai.GenerativeModel(self.model_name, system_instruction=system_instruction)

        generation_config = {"temperature": self.temperature}
        if self.max_tokens:
            generation_config["max_output_tokens"] = self.max_tokens

        try:
            response = await model.generate_content_async(contents, generation_config=generation_config)
        except google_exceptions.GoogleAPICallError as e:
            raise ProviderError("Gemini Chat", e.code, e.message) from e

        # .text raises ValueError when the reply was blocked or has no parts
        try:
            text = response.text
        except ValueError:
            text = None
        if not text or not text.strip():
            raise EmptyReplyError("No content")
        return text.strip()
