"""
Generation module data models.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field


class StickerRequest(BaseModel):
    """Request to turn an uploaded photo into a styled sticker."""

    image_data: str = Field(..., min_length=1, description="Base64-encoded source image")
    mime_type: str = Field(default="image/jpeg", description="Source image MIME type")
    style_id: str = Field(..., min_length=1, description="Artistic style identifier")
    emotion: str = Field(default="happy", min_length=1, description="Emotion to express")


class GeneratedImage(BaseModel):
    """Raw output of the image model."""

    data: str = Field(..., description="Base64-encoded image")
    mime_type: str = Field(default="image/png")


class GeneratedSticker(BaseModel):
    """A sticker produced by a successful generation."""

    id: str = Field(default_factory=lambda: f"stk_{uuid.uuid4().hex}")
    style_id: str
    emotion: str
    image_data: str = Field(..., description="Base64-encoded sticker image")
    mime_type: str = Field(default="image/png")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.image_data}"


class GenerationResult(BaseModel):
    """Outcome of a charged generation."""

    sticker: GeneratedSticker
    credits_used: int
    new_balance: int


class GenerationEvent(BaseModel):
    """Telemetry for one generation attempt sequence, successful or not."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    model: str
    operation: str = "image_generation"
    processing_time_ms: float
    cost: Decimal = Field(default=Decimal("0"), description="Estimated USD cost")
    success: bool
    error_code: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = Field(default_factory=dict)
