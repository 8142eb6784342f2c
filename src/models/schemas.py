# src/models/schemas.py
"""
Defines the Pydantic models shared by the API server and the UI client.

Field names follow the JSON wire format (camelCase) so the same models can be
used to validate request bodies and to build them on the client side.
"""

from typing import List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError

PlayerCount = Literal["1", "2", "3", "4", "5", "6", "7", "8", "9", "10+"]
PlayingTime = Literal[
    "Quick (< 30 mins)",
    "Short (30-60 mins)",
    "Medium (1-2 hours)",
    "Long (2-4 hours)",
    "Super Long (4+ hours)",
]

PLAYER_COUNT_OPTIONS: List[str] = list(get_args(PlayerCount))
PLAYING_TIME_OPTIONS: List[str] = list(get_args(PlayingTime))


class IdentifiedGame(BaseModel):
    """A canonical game title found in the user's photo."""
    gameName: str = Field(..., min_length=1)
    bggId: Optional[str] = None  # reserved for catalog linkage, never populated here

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class IdentifyRequest(BaseModel):
    imageDataUrl: str


class RecommendationRequest(BaseModel):
    identifiedCollection: List[IdentifiedGame]
    playerCount: PlayerCount
    playingTime: PlayingTime

    @property
    def game_names(self) -> List[str]:
        return [game.gameName for game in self.identifiedCollection]


class TextFrame(BaseModel):
    """Payload of one SSE frame carrying a token delta."""
    type: Literal["text"] = "text"
    text: str


class ErrorFrame(BaseModel):
    """Payload of the SSE frame sent when the upstream stream fails mid-way."""
    type: Literal["error"] = "error"
    error: str


def format_validation_errors(error: ValidationError) -> List[str]:
    """Turns a ValidationError into '<field path>: <message>' strings, one per field."""
    details = []
    for issue in error.errors():
        path = ".".join(str(part) for part in issue["loc"]) or "body"
        details.append(f"{path}: {issue['msg']}")
    return details
