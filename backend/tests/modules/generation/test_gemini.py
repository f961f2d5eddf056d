"""Tests for the Gemini sticker generator, prompts and monitoring sink."""

import json
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest

from tests.conftest import no_sleep
from shared.retry import RetryOptions, ai_service_error
from modules.ledger import CreditLedger, InMemoryLedgerStore
from modules.generation import (
    GeminiStickerGenerator,
    GenerationEvent,
    GenerationFailedError,
    GenerationServiceError,
    IMonitoringSink,
    IStickerGenerator,
    LoggingMonitoringSink,
    StickerRequest,
    UsageGate,
    build_style_prompt,
)


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def generator_for(handler, **kwargs):
    kwargs.setdefault("api_key", "test-key")
    kwargs.setdefault("model", "image-model")
    return GeminiStickerGenerator(transport=httpx.MockTransport(handler), **kwargs)


def image_response(data="c3RpY2tlcg==", mime_type="image/png"):
    return httpx.Response(200, json={
        "candidates": [{
            "content": {"parts": [
                {"text": "Here is your sticker"},
                {"inlineData": {"mimeType": mime_type, "data": data}},
            ]},
            "finishReason": "STOP",
        }],
    })


class TestGeminiStickerGenerator:
    def test_implements_interface(self):
        assert isinstance(GeminiStickerGenerator(api_key="k"), IStickerGenerator)

    def test_model_name_from_settings(self):
        assert GeminiStickerGenerator(api_key="k").model_name == "gemini-2.5-flash-image-preview"

    @pytest.mark.asyncio
    async def test_returns_inline_image(self):
        seen = []

        def handler(request):
            seen.append(request)
            return image_response()

        image = await generator_for(handler).predict("cGhvdG8=", "make a sticker", "image/heic")

        assert image.data == "c3RpY2tlcg=="
        assert image.mime_type == "image/png"

        request = seen[0]
        assert request.url.path.endswith("/models/image-model:generateContent")
        assert request.url.params["key"] == "test-key"
        body = json.loads(request.content)
        parts = body["contents"][0]["parts"]
        assert parts[0] == {"text": "make a sticker"}
        assert parts[1]["inlineData"] == {"mimeType": "image/heic", "data": "cGhvdG8="}
        assert body["generationConfig"]["responseModalities"] == ["IMAGE"]

    @pytest.mark.asyncio
    async def test_missing_key(self):
        generator = GeminiStickerGenerator(api_key="", transport=httpx.MockTransport(image_response))
        with pytest.raises(GenerationServiceError) as exc_info:
            await generator.predict("cGhvdG8=", "prompt")
        assert exc_info.value.code == "MODEL_UNAVAILABLE"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,code", [
        (429, "QUOTA_EXCEEDED"),
        (503, "MODEL_UNAVAILABLE"),
        (500, "AI_SERVICE_ERROR"),
        (400, "AI_SERVICE_ERROR"),
    ])
    async def test_http_errors(self, status, code):
        def handler(request):
            return httpx.Response(status, json={"error": {"message": "upstream says no"}})

        with pytest.raises(GenerationServiceError) as exc_info:
            await generator_for(handler).predict("cGhvdG8=", "prompt")

        assert exc_info.value.code == code
        assert exc_info.value.status == status
        assert exc_info.value.message == "upstream says no"

    @pytest.mark.asyncio
    async def test_prompt_blocked(self):
        def handler(request):
            return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

        with pytest.raises(GenerationServiceError) as exc_info:
            await generator_for(handler).predict("cGhvdG8=", "prompt")
        assert exc_info.value.code == "SAFETY_BLOCK"
        assert exc_info.value.status == 422

    @pytest.mark.asyncio
    async def test_candidate_blocked(self):
        def handler(request):
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": []}, "finishReason": "IMAGE_SAFETY"}]
            })

        with pytest.raises(GenerationServiceError) as exc_info:
            await generator_for(handler).predict("cGhvdG8=", "prompt")
        assert exc_info.value.code == "SAFETY_BLOCK"

    @pytest.mark.asyncio
    async def test_text_only_response(self):
        def handler(request):
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "sorry"}]}, "finishReason": "STOP"}]
            })

        with pytest.raises(GenerationServiceError) as exc_info:
            await generator_for(handler).predict("cGhvdG8=", "prompt")
        assert exc_info.value.code == "AI_SERVICE_ERROR"
        assert exc_info.value.status == 502

    @pytest.mark.asyncio
    async def test_rejected_request_surfaces_as_terminal(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, json={"error": {"message": "Invalid image"}})

        ledger = CreditLedger(InMemoryLedgerStore(), initial_credits=10)
        await ledger.register_user("user-1")
        gate = UsageGate(
            ledger,
            generator_for(handler),
            retry_options=RetryOptions(max_attempts=3, retry_condition=ai_service_error),
            generation_cost=1,
            sleep=no_sleep,
        )

        with pytest.raises(GenerationFailedError) as exc_info:
            await gate.generate(
                "user-1", StickerRequest(image_data="cGhvdG8=", style_id="pop-art")
            )

        assert len(calls) == 1
        assert exc_info.value.code == "PROCESSING_FAILED"
        assert exc_info.value.retryable is False
        assert exc_info.value.status_code == 422
        assert await ledger.check_balance("user-1") == 10


class TestPrompts:
    def test_known_style(self):
        prompt = build_style_prompt("claymation", "angry")
        assert "claymation" in prompt
        assert "'angry'" in prompt
        assert "#FFFFFF" in prompt

    def test_unknown_style_falls_back(self):
        assert "in a watercolor style" in build_style_prompt("watercolor", "happy")


class TestLoggingMonitoringSink:
    def event(self, user_id="user-1", success=True, cost="0.039", at=None):
        return GenerationEvent(
            user_id=user_id,
            model="image-model",
            processing_time_ms=1200,
            cost=Decimal(cost),
            success=success,
            error_code=None if success else "CONTENT_BLOCKED",
            timestamp=at or NOW,
        )

    def test_implements_interface(self):
        assert isinstance(LoggingMonitoringSink(), IMonitoringSink)

    @pytest.mark.asyncio
    async def test_records_and_totals(self):
        sink = LoggingMonitoringSink(clock=lambda: NOW)
        await sink.record_generation(self.event())
        await sink.record_generation(self.event(user_id="user-2", cost="0.078"))

        assert len(sink.events) == 2
        assert sink.total_cost() == Decimal("0.117")
        assert sink.total_cost("user-2") == Decimal("0.078")
        assert sink.total_cost("nobody") == Decimal("0")

    @pytest.mark.asyncio
    async def test_failures_logged_as_warnings(self, caplog):
        sink = LoggingMonitoringSink()
        with caplog.at_level("INFO"):
            await sink.record_generation(self.event(success=False))
        assert caplog.records[-1].levelname == "WARNING"
        assert "CONTENT_BLOCKED" in caplog.text

    @pytest.mark.asyncio
    async def test_cost_windows(self):
        sink = LoggingMonitoringSink(clock=lambda: NOW)
        await sink.record_generation(self.event(cost="1.00", at=NOW - timedelta(days=40)))
        await sink.record_generation(self.event(cost="2.00", at=NOW - timedelta(days=1)))
        await sink.record_generation(self.event(cost="4.00"))
        await sink.record_generation(self.event(user_id="user-2", cost="8.00"))

        assert sink.daily_cost() == Decimal("12.00")
        assert sink.daily_cost(date(2026, 3, 14)) == Decimal("2.00")
        assert sink.monthly_cost(2026, 3) == Decimal("14.00")
        assert sink.monthly_cost(2026, 2) == Decimal("1.00")
        assert sink.user_monthly_cost("user-1", 2026, 3) == Decimal("6.00")
        assert sink.user_monthly_cost("user-2", 2026, 2) == Decimal("0")

    @pytest.mark.asyncio
    async def test_threshold_alert_logged_once_per_period(self, caplog):
        sink = LoggingMonitoringSink(
            daily_threshold=Decimal("1000"),
            monthly_threshold=Decimal("1000"),
            user_monthly_threshold=Decimal("0.05"),
            clock=lambda: NOW,
        )
        with caplog.at_level("WARNING"):
            await sink.record_generation(self.event())
            assert "ALERT" not in caplog.text
            await sink.record_generation(self.event())
            await sink.record_generation(self.event())

        alerts = [r.getMessage() for r in caplog.records if "ALERT" in r.getMessage()]
        assert alerts == ["ALERT [USER_COST_EXCEEDED]: User user-1 monthly cost: $0.08"]

    @pytest.mark.asyncio
    async def test_daily_threshold(self, caplog):
        sink = LoggingMonitoringSink(daily_threshold=Decimal("5"), clock=lambda: NOW)
        with caplog.at_level("WARNING"):
            await sink.record_generation(self.event(user_id="a", cost="3"))
            await sink.record_generation(self.event(user_id="b", cost="3"))
        assert "ALERT [DAILY_COST_EXCEEDED]: Daily cost: $6.00" in caplog.text

    @pytest.mark.asyncio
    async def test_old_events_are_pruned(self):
        sink = LoggingMonitoringSink(retention=timedelta(days=30), clock=lambda: NOW)
        await sink.record_generation(self.event(at=NOW - timedelta(days=31)))
        await sink.record_generation(self.event())

        assert len(sink.events) == 1

    @pytest.mark.asyncio
    async def test_buffer_is_bounded(self):
        sink = LoggingMonitoringSink(max_events=2, clock=lambda: NOW)
        for cost in ("1", "2", "3"):
            await sink.record_generation(self.event(cost=cost))

        assert [e.cost for e in sink.events] == [Decimal("2"), Decimal("3")]
