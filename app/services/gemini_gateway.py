"""Gemini text generation proxy.

Forwards a prompt to the ``generateContent`` REST endpoint and hands the
provider's JSON back untouched.
"""

import time
from typing import Any, Dict, Optional

import httpx

from app.config.logger import app_logger, log_performance
from app.config.settings import Settings
from app.utils.errors import ConfigurationError, GenerationError, truncate_detail

DEFAULT_USER_AGENT = "AI-Product-Generator-Proxy"


def build_generation_payload(prompt: str) -> Dict[str, Any]:
    """Single-turn request asking for plain-text output."""
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "responseMimeType": "text/plain",
        },
    }


class GeminiGateway:
    """Stateless proxy in front of the Gemini API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self.settings = settings
        self.http_client = http_client

    @property
    def endpoint(self) -> str:
        base_url = self.settings.GEMINI_API_BASE_URL.rstrip("/")
        return f"{base_url}/models/{self.settings.GEMINI_MODEL}:generateContent"

    async def generate(self, prompt: str, user_agent: Optional[str] = None) -> Dict[str, Any]:
        """Send ``prompt`` to Gemini and return the raw response body.

        Raises:
            ValueError: if the prompt is empty (no request is made)
            ConfigurationError: if GEMINI_API_KEY is not set
            GenerationError: on a non-success status or a transport failure
        """
        if not prompt:
            raise ValueError("Prompt is required.")
        if not self.settings.gemini_configured:
            app_logger.error("Missing GEMINI_API_KEY environment variable.")
            raise ConfigurationError("Server configuration error: Missing Gemini API key.")

        app_logger.info(f"Gemini request: model={self.settings.GEMINI_MODEL}, prompt={prompt[:100]}...")
        started = time.perf_counter()
        try:
            response = await self.http_client.post(
                self.endpoint,
                params={"key": self.settings.GEMINI_API_KEY},
                json=build_generation_payload(prompt),
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": user_agent or DEFAULT_USER_AGENT,
                },
            )
        except httpx.HTTPError as e:
            app_logger.error(f"Gemini request failed to connect: {e}")
            raise GenerationError(f"Could not reach Gemini API: {e}") from e
        finally:
            log_performance("gemini.generate", time.perf_counter() - started, model=self.settings.GEMINI_MODEL)

        try:
            result = response.json()
        except ValueError:
            result = None

        if response.is_error:
            message = "Unknown error"
            if isinstance(result, dict) and isinstance(result.get("error"), dict):
                message = result["error"].get("message") or message
            app_logger.error(
                f"Gemini API Error: status {response.status_code}, body: {truncate_detail(response.text)}"
            )
            raise GenerationError(
                f"Gemini API error: {message}",
                status_code=response.status_code,
                detail=response.text,
            )

        if not isinstance(result, dict):
            app_logger.error(f"Gemini returned a non-JSON body: {truncate_detail(response.text)}")
            raise GenerationError(
                "Gemini API returned an unreadable response.",
                detail=response.text,
            )

        return result
