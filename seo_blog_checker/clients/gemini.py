import logging
from typing import Optional

import httpx
from google import genai
from google.genai import errors, types

from ..errors import (
    BadRequestError,
    EvaluationConnectivityError,
    EvaluationTransportError,
    ModelNotFoundError,
    RateLimitError,
)

logger = logging.getLogger(__name__)


class GeminiClient:
    """Thin async wrapper over the google-genai SDK for text generation.

    Transport failures are mapped onto the evaluation error taxonomy. Nothing
    is retried here; callers decide whether to retry a RateLimitError.
    """

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", timeout: float = 120.0,
                 temperature: float = 0.3, top_k: int = 40, top_p: float = 0.95,
                 max_output_tokens: int = 8192):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.generation_config = types.GenerateContentConfig(
            temperature=temperature,
            top_k=top_k,
            top_p=top_p,
            max_output_tokens=max_output_tokens,
        )
        self.client = self._initialize_client()

    def _initialize_client(self) -> genai.Client:
        logger.info(f"Initializing Gemini with API key (Model: {self.model})")
        # HttpOptions.timeout is expressed in milliseconds
        return genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
        )

    async def generate_text(self, prompt: str, model: Optional[str] = None) -> str:
        """Send one prompt and return the first candidate's text."""
        model = model or self.model
        logger.info(f"Calling Gemini API (Model: {model}, prompt: {len(prompt)} chars)")
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=self.generation_config,
            )
        except errors.APIError as e:
            raise self._map_api_error(e, model) from e
        except httpx.TimeoutException as e:
            raise EvaluationConnectivityError(f"Gemini API request timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise EvaluationConnectivityError(
                f"Cannot connect to Gemini API. Please check your internet connection. ({e})"
            ) from e

        text = response.text if response is not None else None
        if not text:
            raise EvaluationTransportError("Invalid response format from Gemini API: no candidate text")
        logger.debug(f"Gemini response: {len(text)} chars")
        return text

    def _map_api_error(self, error: errors.APIError, model: str) -> Exception:
        code = getattr(error, "code", None)
        message = getattr(error, "message", None) or str(error)
        if code == 429:
            return RateLimitError("Gemini API rate limit exceeded. Please try again later.")
        if code == 400:
            return BadRequestError(f"Gemini API request failed: {message}")
        if code == 404:
            return ModelNotFoundError(
                f"Gemini API endpoint not found for model '{model}'. "
                "Please check the API key and model name."
            )
        return EvaluationTransportError(f"Gemini API error ({code}): {message}")

    async def test_connection(self) -> bool:
        try:
            text = await self.generate_text("Please respond with 'OK' if you can read this message.")
            return bool(text)
        except Exception as e:
            logger.error(f"Gemini API connection test failed: {e}")
            return False
