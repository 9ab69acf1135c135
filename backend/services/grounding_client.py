"""Thin client for the Gemini "generate content" call with Maps grounding.

The client is constructed explicitly and handed to the resolver so tests can
swap in a fake; nothing here is a module-level singleton.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from domain.errors import ResolutionError
from settings import settings

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT_SECONDS = 20.0


@dataclass(frozen=True)
class GroundingResponse:
    text: str
    grounding_chunks: List[Dict[str, Any]] = field(default_factory=list)

    def map_uri(self) -> Optional[str]:
        """Return the first maps-source URI among the grounding chunks."""
        for chunk in self.grounding_chunks:
            maps = chunk.get("maps") if isinstance(chunk, dict) else None
            if isinstance(maps, dict) and maps.get("uri"):
                return str(maps["uri"])
        return None


class GroundingClient:
    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> "GroundingClient":
        return cls(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            base_url=settings.GEMINI_BASE_URL,
            timeout=settings.GEMINI_TIMEOUT_SECONDS,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def generate_content(self, prompt: str) -> GroundingResponse:
        """
        Send a single prompt with Maps grounding enabled.

        Raises ResolutionError on transport, auth, quota or timeout failures
        and when the service answers without any text.
        """
        if not self.api_key:
            raise ResolutionError("Grounding service API key is not configured")

        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "tools": [{"googleMaps": {}}],
        }
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }
        try:
            resp = self.session.post(
                self.endpoint, json=body, headers=headers, timeout=self.timeout
            )
        except requests.Timeout as exc:
            logger.warning("Grounding request timed out after %.1fs: %s", self.timeout, exc)
            raise ResolutionError("Grounding service timed out", timed_out=True) from exc
        except requests.RequestException as exc:
            logger.warning("Grounding request failed: %s", exc)
            raise ResolutionError(f"Grounding service request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.warning(
                "Grounding service returned HTTP %s: %s", resp.status_code, resp.text[:300]
            )
            raise ResolutionError(f"Grounding service returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise ResolutionError("Grounding service returned an undecodable body") from exc

        text, chunks = _extract_candidate(data)
        if not text:
            raise ResolutionError("No response from grounding service")
        logger.debug(
            "GroundingClient.generate_content: model=%s chars=%d chunks=%d",
            self.model,
            len(text),
            len(chunks),
        )
        return GroundingResponse(text=text, grounding_chunks=chunks)


def _extract_candidate(data: Any) -> tuple[str, List[Dict[str, Any]]]:
    """Pull the first candidate's text and grounding chunks from a raw reply."""
    if not isinstance(data, dict):
        return "", []
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return "", []
    first = candidates[0]
    content = first.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        parts = []
    text = "".join(
        p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)
    )
    metadata = first.get("groundingMetadata")
    raw_chunks = metadata.get("groundingChunks") if isinstance(metadata, dict) else None
    if not isinstance(raw_chunks, list):
        raw_chunks = []
    chunks = [c for c in raw_chunks if isinstance(c, dict)]
    return text.strip(), chunks
