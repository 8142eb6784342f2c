# src/core/gemini_client.py
"""
A thin REST client for Gemini's `generateContent` endpoint.

Used by the identification pipeline for the image call and for the
schema-constrained canonicalization call. The API key is sent in a header so it
never shows up in logged URLs.
"""

import logging
from typing import Any, Dict, List, Optional

import requests


class GeminiAPIError(Exception):
    """Raised when Gemini answers with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Gemini API call failed: {status_code} - {body}")


class GeminiClient:
    """Sends `generateContent` requests and extracts the first text part."""

    def __init__(self, api_key: str, base_url: str, timeout: float = 60.0,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config) -> "GeminiClient":
        return cls(
            api_key=config.api_keys.gemini,
            base_url=config.gemini.base_url,
            timeout=config.gemini.timeout_seconds,
        )

    def generate_content(self, model: str, parts: List[Dict[str, Any]],
                         generation_config: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """
        Posts a single-turn user message and returns the text of the first
        candidate, or None when the response carries no text.
        """
        payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if generation_config:
            payload["generationConfig"] = generation_config

        url = f"{self.base_url}/models/{model}:generateContent"
        response = self.session.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key},
            timeout=self.timeout,
        )
        if not response.ok:
            raise GeminiAPIError(response.status_code, response.text)

        result = response.json()
        return extract_text(result)


def extract_text(result: Dict[str, Any]) -> Optional[str]:
    """Returns candidates[0].content.parts[0].text, or None if any step is missing."""
    try:
        return result["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        logging.warning("Gemini response did not contain any text part.")
        return None
