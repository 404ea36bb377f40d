"""
Gemini Service - Google Generative Language API Integration
Farming chat assistant and plant image analysis.
"""

import base64
import logging
import httpx
from typing import Any, Dict, List, Optional

from ..config import Settings
from .http import build_client, post_json

logger = logging.getLogger(__name__)

CHAT_UNAVAILABLE = (
    "I apologize, but I'm having trouble connecting to the AI service right now. "
    "Please try again later."
)
ANALYSIS_FAILED = "Analysis failed. Please try again."


def build_chat_prompt(message: str, context: str = "") -> str:
    """Single-turn prompt carrying the live farm context."""
    return (
        f"You are a smart farming AI assistant. Context: {context}\n\n"
        f"User question: {message}\n\n"
        "Provide practical farming advice based on the context and question."
    )


def first_candidate_text(data: Dict[str, Any]) -> str:
    """Text of the first candidate in a generateContent reply."""
    return data["candidates"][0]["content"]["parts"][0]["text"]


class GeminiService:
    """Gemini text and multimodal generation."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.url = settings.gemini_url
        self.api_key = settings.gemini_api_key
        self._owns_client = client is None
        self.client = client or build_client(settings)

    async def generate(self, parts: List[Dict[str, Any]]) -> Dict[str, Any]:
        """POST one user turn made of `parts` and return the raw reply."""
        payload = {"contents": [{"parts": parts}]}
        return await post_json(self.client, self.url, payload, params={"key": self.api_key})

    async def chat(self, message: str, context: str = "") -> str:
        """
        Ask the farming assistant a question.

        Returns:
            The assistant's reply, or CHAT_UNAVAILABLE on any failure.
        """
        try:
            data = await self.generate([{"text": build_chat_prompt(message, context)}])
            return first_candidate_text(data)
        except Exception as e:
            logger.error(f"Gemini chat error: {e!r}")
            return CHAT_UNAVAILABLE

    async def analyze_image(self, image: bytes, mime_type: str, prompt: str) -> str:
        """
        Send an image with an instruction prompt to the vision model.

        Returns:
            Free-text analysis, or ANALYSIS_FAILED on any failure.
        """
        try:
            encoded = base64.b64encode(image).decode("ascii")
            data = await self.generate([
                {"text": prompt},
                {"inlineData": {"mimeType": mime_type, "data": encoded}},
            ])
            candidates = data.get("candidates") or []
            if not candidates or not candidates[0].get("content"):
                raise ValueError("Invalid response from Gemini API")
            return candidates[0]["content"]["parts"][0]["text"]
        except Exception as e:
            logger.error(f"Gemini vision error: {e!r}")
            return ANALYSIS_FAILED

    async def close(self):
        """Close the HTTP client if this service created it."""
        if self._owns_client:
            await self.client.aclose()
