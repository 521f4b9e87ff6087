"""
Central config for the travel guide: provider endpoints, model names, the system
prompt and audio parameters. Everything can be overridden from the environment
(or a .env file next to the app).
"""
import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

from errors import MissingCredentialError

load_dotenv()


def _optional_int(name: str):
    value = os.getenv(name, "").strip()
    return int(value) if value else None


# --- System instructions (fixed first turn of every transcript) ---
SYSTEM_PROMPT = """You are a concise travel guide. Always respond in the user's language if possible. Stay on-topic for the given coordinates and location.
For the first response, you must return STRICT JSON only in the following shape and nothing else:
{
  "name": "<short location name>",
  "description": "<1-2 sentence interesting overview>"
}"""

# --- Chat provider: "openai" (default) or "gemini" ---
CHAT_PROVIDER = os.getenv("CHAT_PROVIDER", "openai").strip().lower()
CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
CHAT_MAX_TOKENS = _optional_int("CHAT_MAX_TOKENS")  # None = let the provider decide

# Gemini 2.5 Flash Lite keeps the strict JSON first reply reliable
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite")

# --- OpenAI-compatible endpoints (chat, TTS, STT) ---
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")

# --- TTS ---
TTS_MODEL = os.getenv("TTS_MODEL", "tts-1")
TTS_VOICE = os.getenv("TTS_VOICE", "nova")

# --- STT ---
STT_MODEL = os.getenv("STT_MODEL", "whisper-1")

# --- Audio ---
AUDIO_CACHE_DIR = Path(os.getenv("AUDIO_CACHE_DIR") or Path(tempfile.gettempdir()) / "ai-travel-assistant")
RECORDING_SAMPLE_RATE = int(os.getenv("RECORDING_SAMPLE_RATE", "44100"))
RECORDING_CHANNELS = int(os.getenv("RECORDING_CHANNELS", "1"))

# --- Server ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_api_key(name: str = "OPENAI_API_KEY") -> str:
    """Read a provider credential, failing before any network call if it is absent."""
    key = os.getenv(name, "").strip()
    if not key:
        raise MissingCredentialError(name)
    return key
