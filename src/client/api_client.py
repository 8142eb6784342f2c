# src/client/api_client.py
"""
HTTP client used by the Streamlit UI to talk to the backend API.
"""

import logging
from typing import List, Optional

import requests

from src.models.schemas import IdentifiedGame, RecommendationRequest


class RecommendationStreamError(Exception):
    """A known failure while fetching or reading the recommendation stream."""


class RecommenderApiClient:
    """Wraps the /api/identify and /api/recommendation endpoints."""

    def __init__(self, base_url: str, timeout: float = 120.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config) -> "RecommenderApiClient":
        return cls(config.server.api_base_url, timeout=config.server.client_timeout_seconds)

    def identify_games(self, image_data_url: str) -> List[IdentifiedGame]:
        response = self.session.post(
            f"{self.base_url}/api/identify",
            json={"imageDataUrl": image_data_url},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return [IdentifiedGame(**game) for game in response.json()]

    def open_recommendation_stream(self, request: RecommendationRequest) -> requests.Response:
        """
        POSTs the request and returns the still-open streaming response.
        Non-200 answers are turned into RecommendationStreamError carrying the
        server's error message.
        """
        response = self.session.post(
            f"{self.base_url}/api/recommendation",
            json=request.model_dump(),
            headers={"Accept": "text/event-stream"},
            stream=True,
            timeout=self.timeout,
        )
        if response.status_code != 200:
            message = _error_message(response)
            response.close()
            raise RecommendationStreamError(message)
        return response


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"

    message = body.get("error", f"HTTP {response.status_code}") if isinstance(body, dict) else str(body)
    details = body.get("details") if isinstance(body, dict) else None
    if details:
        message = f"{message} ({'; '.join(details)})"
    logging.error(f"Recommendation API returned {response.status_code}: {message}")
    return message
