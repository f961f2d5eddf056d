"""
Generation module interfaces.

The image model and the monitoring sink are external collaborators;
UsageGate only depends on these protocols.
"""

from typing import Protocol, runtime_checkable

from .models import GeneratedImage, GenerationEvent, GenerationResult, StickerRequest


@runtime_checkable
class IStickerGenerator(Protocol):
    """Generative image model turning a photo plus a style prompt into an image."""

    @property
    def model_name(self) -> str:
        ...

    async def predict(
        self,
        image_data: str,
        style_prompt: str,
        mime_type: str = "image/jpeg",
    ) -> GeneratedImage:
        """
        Generate one image.

        Raises:
            GenerationServiceError: When the service fails or refuses the request
        """
        ...


@runtime_checkable
class IMonitoringSink(Protocol):
    """Receives usage and cost telemetry."""

    async def record_generation(self, event: GenerationEvent) -> None:
        ...


@runtime_checkable
class IUsageGate(Protocol):
    """Charges credits for sticker generation, only on success."""

    async def generate(self, user_id: str, request: StickerRequest) -> GenerationResult:
        """
        Raises:
            InsufficientCreditsError: Before any external call
            GenerationFailedError: When the model call fails; no debit occurs
        """
        ...
