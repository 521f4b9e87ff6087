from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, StrictStr
from typing import Optional, List, Literal

Role = Literal["system", "user", "assistant"]
Voice = Literal["alloy", "nova"]


def _format_number(value: float) -> str:
    # 48.0 -> "48", -74.0060 -> "-74.006", 1e-05 -> "0.00001"
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" in text:
        text = format(Decimal(text), "f")
    return text


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)

    def __str__(self) -> str:
        return f"{_format_number(self.latitude)},{_format_number(self.longitude)}"


# One entry of the transcript sent to the chat provider
class ChatTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


# The strict JSON the first assistant reply must contain
class LocationSummary(BaseModel):
    name: StrictStr
    description: StrictStr


# Home screen sends the raw text typed by the user
class CoordinatesRequest(BaseModel):
    text: str


class CoordinatesResponse(BaseModel):
    coords: str
    latitude: float
    longitude: float


# Everything the location screen renders
class ScreenResponse(BaseModel):
    title: str
    state: str
    loading: bool
    chat_loading: bool
    is_talking: bool
    error: Optional[str] = None
    messages: List[ChatTurn]
