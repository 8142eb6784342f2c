# src/client/stream_consumer.py
"""
Client-side consumption of the recommendation stream.

SSEFrameParser turns decoded text chunks into token strings, buffering the
trailing partial line so frames split across network chunks survive.
RecommendationSession owns the accumulated markdown and the
idle -> streaming -> done/error status for one browser session.
"""

import codecs
import json
import logging
from enum import Enum
from typing import Callable, List, Optional

import requests

from src.client.api_client import RecommendationStreamError, RecommenderApiClient
from src.core.sse import DATA_PREFIX, DONE_SENTINEL
from src.models.schemas import IdentifiedGame, RecommendationRequest


class StreamStatus(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    DONE = "done"
    ERROR = "error"


class PreconditionError(ValueError):
    """Raised before any network call when the image or a preference is missing."""


class SSEFrameParser:
    """Incremental parser for `data: ...` frames."""

    def __init__(self):
        self._buffer = ""
        self.done_received = False
        self.error: Optional[str] = None

    def feed(self, text: str) -> List[str]:
        """Returns the text deltas completed by this chunk, in order."""
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def flush(self) -> List[str]:
        """Parses whatever is left once the byte source is exhausted."""
        remainder, self._buffer = self._buffer, ""
        return self._parse_lines([remainder]) if remainder.strip() else []

    def _parse_lines(self, lines: List[str]) -> List[str]:
        texts = []
        for line in lines:
            line = line.rstrip("\r")
            if not line.startswith(DATA_PREFIX):
                if line.strip():
                    logging.warning(f"Skipping non-data line in stream: {line[:80]!r}")
                continue

            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_SENTINEL:
                # rest of this chunk is ignored, the read loop ends on its own
                self.done_received = True
                self._buffer = ""
                break

            data = self._parse_payload(payload)
            if data is None:
                continue
            if isinstance(data, dict) and data.get("type") == "error":
                self.error = data.get("error") or "The recommendation stream failed."
                break

            text = data.get("text") if isinstance(data, dict) else None
            if not isinstance(text, str):
                logging.warning(f"Skipping stream frame without text: {payload[:80]!r}")
                continue
            texts.append(text)
        return texts

    @staticmethod
    def _parse_payload(payload: str):
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            logging.warning(f"Skipping malformed stream frame: {payload[:80]!r}")
            return None


def check_preconditions(image_data_url: Optional[str], player_count: Optional[str],
                        playing_time: Optional[str]) -> None:
    if not image_data_url:
        raise PreconditionError("Please capture or upload a photo of your collection first.")
    if not player_count:
        raise PreconditionError("Please select a player count.")
    if not playing_time:
        raise PreconditionError("Please select a playing time.")


class RecommendationSession:
    """
    Holds the accumulated recommendation text for one user session.

    A new request while another is still streaming closes the old response
    first (cancel-and-replace).
    """

    def __init__(self, api_client: RecommenderApiClient, on_update: Optional[Callable[[str], None]] = None):
        self.api_client = api_client
        self.on_update = on_update
        self.status = StreamStatus.IDLE
        self.output = ""
        self.error_message: Optional[str] = None
        self.identified_collection: List[IdentifiedGame] = []
        self._response: Optional[requests.Response] = None

    @property
    def is_streaming(self) -> bool:
        return self.status is StreamStatus.STREAMING

    def run(self, image_data_url: Optional[str], player_count: Optional[str],
            playing_time: Optional[str]) -> StreamStatus:
        """
        Full flow: identify the games in the photo, then stream recommendations.
        Raises PreconditionError without touching any state when input is missing.
        """
        check_preconditions(image_data_url, player_count, playing_time)
        self.cancel()

        try:
            self.identified_collection = self.api_client.identify_games(image_data_url)
        except (requests.RequestException, ValueError, TypeError) as e:
            logging.error(f"Game identification request failed: {e}")
            self._fail(f"Could not identify the games in your photo: {e}")
            return self.status

        return self.recommend(self.identified_collection, player_count, playing_time)

    def recommend(self, collection: List[IdentifiedGame], player_count: str, playing_time: str) -> StreamStatus:
        self.cancel()
        request = RecommendationRequest(
            identifiedCollection=collection,
            playerCount=player_count,
            playingTime=playing_time,
        )

        self.output = ""
        self.error_message = None
        self.status = StreamStatus.STREAMING
        self._notify()

        try:
            self._response = self.api_client.open_recommendation_stream(request)
            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            parser = SSEFrameParser()
            for chunk in self._response.iter_content(chunk_size=None):
                self._append(parser.feed(decoder.decode(chunk)), parser)
            self._append(parser.feed(decoder.decode(b"", final=True)), parser)
            self._append(parser.flush(), parser)
            self.status = StreamStatus.DONE
        except RecommendationStreamError as e:
            self._fail(f"Failed to get recommendations: {e}")
        except requests.RequestException as e:
            self._fail(f"Lost connection to the recommendation service: {e}")
        except Exception:
            logging.exception("Unexpected error while reading the recommendation stream.")
            self._fail("An unknown error occurred while fetching recommendations.")
        finally:
            self._close_response()
            if self.status is StreamStatus.STREAMING:
                # interrupted by a script rerun
                logging.warning("Recommendation stream was interrupted before it finished.")
                self.status = StreamStatus.IDLE
        return self.status

    def cancel(self) -> None:
        """Closes an in-flight stream, if any."""
        if self._response is not None:
            logging.info("Cancelling the in-flight recommendation stream.")
            self._close_response()
            if self.status is StreamStatus.STREAMING:
                self.status = StreamStatus.IDLE

    def _append(self, texts: List[str], parser: SSEFrameParser) -> None:
        if texts:
            self.output += "".join(texts)
            self._notify()
        if parser.error is not None:
            raise RecommendationStreamError(parser.error)

    def _fail(self, message: str) -> None:
        self.status = StreamStatus.ERROR
        self.error_message = message
        logging.error(message)

    def _notify(self) -> None:
        if self.on_update:
            self.on_update(self.output)

    def _close_response(self) -> None:
        response, self._response = self._response, None
        if response is not None:
            response.close()
