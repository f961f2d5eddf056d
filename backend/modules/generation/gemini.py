"""
Gemini image generation client.

Calls the generateContent REST endpoint directly with httpx and maps its
failure modes onto GenerationServiceError codes the retry predicates and
error classifier understand.
"""

import logging
from typing import Any, Optional

import httpx

from shared.config import get_settings

from .exceptions import GenerationServiceError
from .models import GeneratedImage

logger = logging.getLogger(__name__)


class GeminiStickerGenerator:
    """Sticker generator backed by a Gemini image model."""

    API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self._api_key = api_key or settings.gemini_api_key
        self._model = model or settings.gemini_model
        self._timeout = timeout or settings.generation_timeout
        self._transport = transport

    @property
    def model_name(self) -> str:
        return self._model

    async def predict(
        self,
        image_data: str,
        style_prompt: str,
        mime_type: str = "image/jpeg",
    ) -> GeneratedImage:
        if not self._api_key:
            raise GenerationServiceError(
                "Gemini API key is not configured",
                code="MODEL_UNAVAILABLE",
            )

        payload = {
            "contents": [{
                "parts": [
                    {"text": style_prompt},
                    {"inlineData": {"mimeType": mime_type, "data": image_data}},
                ]
            }],
            "generationConfig": {"responseModalities": ["IMAGE"]},
        }

        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            response = await client.post(
                self.API_URL.format(model=self._model),
                params={"key": self._api_key},
                json=payload,
            )

        if response.status_code >= 400:
            raise self._error_from_response(response)

        return self._extract_image(response.json())

    def _error_from_response(self, response: httpx.Response) -> GenerationServiceError:
        status = response.status_code
        try:
            message = response.json().get("error", {}).get("message")
        except ValueError:
            message = None
        message = message or f"Gemini request failed with status {status}"

        if status == 429:
            code = "QUOTA_EXCEEDED"
        elif status in (502, 503, 504):
            code = "MODEL_UNAVAILABLE"
        else:
            code = "AI_SERVICE_ERROR"
        return GenerationServiceError(message, code=code, status=status)

    def _extract_image(self, result: dict[str, Any]) -> GeneratedImage:
        candidates = result.get("candidates") or []
        parts = candidates[0].get("content", {}).get("parts", []) if candidates else []
        for part in parts:
            inline = part.get("inlineData")
            if inline and inline.get("data"):
                return GeneratedImage(
                    data=inline["data"],
                    mime_type=inline.get("mimeType", "image/png"),
                )

        block_reason = (result.get("promptFeedback") or {}).get("blockReason")
        finish_reason = candidates[0].get("finishReason") if candidates else None
        if block_reason or finish_reason in ("SAFETY", "PROHIBITED_CONTENT", "IMAGE_SAFETY"):
            reason = block_reason or finish_reason
            logger.info(f"Gemini blocked generation: {reason}")
            raise GenerationServiceError(
                f"Generation blocked: {reason}",
                code="SAFETY_BLOCK",
                status=422,
            )

        raise GenerationServiceError("No image data in response", status=502)
