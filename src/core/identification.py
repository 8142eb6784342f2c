# src/core/identification.py
"""
The two-phase game identification pipeline.

1.  Vision: the photo is sent to an image-capable Gemini model which answers
    with a comma-separated list of the titles it can read.
2.  Canonicalization: the raw names are sent to a text model in structured
    output mode, which keeps only real board games and returns their
    canonical names.

Each stage returns a StageResult. A failed stage carries its error next to an
empty value, so the caller can keep going with "no games identified" while
still knowing what went wrong.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Generic, List, Optional, Tuple, TypeVar

from pydantic import ValidationError

from src.core.gemini_client import GeminiClient
from src.core.prompts import (
    CANONICALIZATION_SCHEMA,
    VISION_PROMPT,
    build_canonicalization_prompt,
)
from src.models.schemas import IdentifiedGame

T = TypeVar("T")

DATA_URL_MIME_PATTERN = re.compile(r"^data:(.*?);base64$")
DEFAULT_IMAGE_MIME = "image/jpeg"


@dataclass
class StageResult(Generic[T]):
    """Outcome of one pipeline stage: a value, plus the error if it fell back."""
    value: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def fallback(cls, value: T, error: Exception) -> "StageResult[T]":
        return cls(value=value, error=f"{type(error).__name__}: {error}")


@dataclass
class IdentificationResult:
    """Typed intermediate state of the pipeline, kept for logging and tests."""
    raw_names: StageResult[List[str]]
    games: StageResult[List[IdentifiedGame]] = field(default_factory=lambda: StageResult(value=[]))


def split_data_url(image_data_url: str) -> Tuple[str, str]:
    """
    Splits a data URL into (mime type, base64 payload).

    A URL without a comma yields an empty payload instead of an error.
    """
    header, sep, payload = image_data_url.partition(",")
    if not sep:
        return DEFAULT_IMAGE_MIME, ""
    match = DATA_URL_MIME_PATTERN.match(header)
    mime_type = match.group(1) if match and match.group(1) else DEFAULT_IMAGE_MIME
    return mime_type, payload


def parse_game_names(text: Optional[str]) -> List[str]:
    """Turns the vision model's free text into a list of trimmed, unique names."""
    if not text or text.strip().lower() in ("", "none"):
        return []
    names: List[str] = []
    for name in text.split(","):
        name = name.strip()
        if name and name not in names:
            names.append(name)
    return names


class VisionIdentifier:
    """Asks an image-capable model which board games are visible in a photo."""

    def __init__(self, client: GeminiClient, model: str, temperature: float = 0.2, max_output_tokens: int = 50):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def identify(self, image_data_url: str) -> StageResult[List[str]]:
        mime_type, base64_image = split_data_url(image_data_url)
        logging.info(f"Sending image to vision model '{self.model}' ({mime_type}, {len(base64_image)} base64 chars).")
        try:
            text = self.client.generate_content(
                model=self.model,
                parts=[
                    {"text": VISION_PROMPT},
                    {"inline_data": {"mime_type": mime_type, "data": base64_image}},
                ],
                generation_config={
                    "temperature": self.temperature,
                    "maxOutputTokens": self.max_output_tokens,
                },
            )
        except Exception as e:
            logging.error(f"Image identification failed: {e}")
            return StageResult.fallback([], e)

        names = parse_game_names(text)
        logging.info(f"Vision model identified: {names}")
        return StageResult(value=names)


class Canonicalizer:
    """Maps noisy titles to canonical board game names using structured output."""

    def __init__(self, client: GeminiClient, model: str):
        self.client = client
        self.model = model

    def canonicalize(self, raw_names: List[str]) -> StageResult[List[IdentifiedGame]]:
        if not raw_names:
            return StageResult(value=[])

        try:
            json_text = self.client.generate_content(
                model=self.model,
                parts=[{"text": build_canonicalization_prompt(raw_names)}],
                generation_config={
                    "responseMimeType": "application/json",
                    "responseSchema": CANONICALIZATION_SCHEMA,
                },
            )
            games = parse_canonical_games(json_text)
        except Exception as e:
            logging.error(f"Game canonicalization failed: {e}")
            return StageResult.fallback([], e)

        logging.info(f"Canonical games: {[game.gameName for game in games]}")
        return StageResult(value=games)


def parse_canonical_games(json_text: Optional[str]) -> List[IdentifiedGame]:
    """
    Validates the model's JSON array entry by entry. Entries without a usable
    gameName are dropped; a payload that is not a JSON array raises ValueError.
    """
    if not json_text:
        return []
    parsed = json.loads(json_text)
    if not isinstance(parsed, list):
        raise ValueError(f"Expected a JSON array of games, got {type(parsed).__name__}")

    games: List[IdentifiedGame] = []
    for entry in parsed:
        if not isinstance(entry, dict):
            logging.warning(f"Dropping non-object canonicalization entry: {entry!r}")
            continue
        try:
            games.append(IdentifiedGame(gameName=entry.get("gameName"), bggId=None))
        except ValidationError:
            logging.warning(f"Dropping canonicalization entry without a valid gameName: {entry!r}")
    return games


class IdentificationPipeline:
    """Runs vision then canonicalization; never raises for upstream failures."""

    def __init__(self, vision: VisionIdentifier, canonicalizer: Canonicalizer):
        self.vision = vision
        self.canonicalizer = canonicalizer

    @classmethod
    def from_config(cls, config) -> "IdentificationPipeline":
        client = GeminiClient.from_config(config)
        return cls(
            vision=VisionIdentifier(
                client,
                model=config.models.vision,
                temperature=config.generation.vision_temperature,
                max_output_tokens=config.generation.vision_max_tokens,
            ),
            canonicalizer=Canonicalizer(client, model=config.models.canonicalization),
        )

    def run(self, image_data_url: str) -> IdentificationResult:
        raw_names = self.vision.identify(image_data_url)
        if not raw_names.ok:
            logging.warning(f"Vision stage fell back to no games: {raw_names.error}")

        games = self.canonicalizer.canonicalize(raw_names.value)
        if not games.ok:
            logging.warning(f"Canonicalization stage fell back to no games: {games.error}")

        return IdentificationResult(raw_names=raw_names, games=games)
