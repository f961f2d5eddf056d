"""
Monitoring sink that records generation telemetry through logging.

Besides logging every event, the sink keeps a bounded window of recent
events for daily, monthly and per-user cost queries, and logs an alert
the first time spend crosses a configured threshold in a period.
"""

import logging
from collections import deque
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional

from shared.config import get_settings

from .models import GenerationEvent

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _sum_cost(events: Iterable[GenerationEvent]) -> Decimal:
    return sum((e.cost for e in events), Decimal("0"))


class LoggingMonitoringSink:
    """
    Keeps generation events in memory and logs each one.

    Suitable for development and single-process deployments; production
    deployments can ship the log lines to their metrics pipeline.
    """

    def __init__(
        self,
        daily_threshold: Optional[Decimal] = None,
        monthly_threshold: Optional[Decimal] = None,
        user_monthly_threshold: Optional[Decimal] = None,
        retention: Optional[timedelta] = None,
        max_events: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        settings = get_settings()
        self._daily_threshold = daily_threshold if daily_threshold is not None else settings.cost_alert_daily
        self._monthly_threshold = (
            monthly_threshold if monthly_threshold is not None else settings.cost_alert_monthly
        )
        self._user_monthly_threshold = (
            user_monthly_threshold if user_monthly_threshold is not None
            else settings.cost_alert_user_monthly
        )
        self._retention = retention or timedelta(days=settings.monitoring_retention_days)
        self._events: deque[GenerationEvent] = deque(
            maxlen=max_events or settings.monitoring_max_events
        )
        self._clock = clock
        # (alert type, period, user) already reported
        self._alerted: set[tuple[str, str, str]] = set()

    async def record_generation(self, event: GenerationEvent) -> None:
        self._prune()
        self._events.append(event)
        level = logging.INFO if event.success else logging.WARNING
        logger.log(
            level,
            f"AI usage: user={event.user_id} model={event.model} "
            f"success={event.success} time={event.processing_time_ms:.0f}ms "
            f"cost=${event.cost} error={event.error_code}",
        )
        self._check_cost_thresholds(event)

    @property
    def events(self) -> list[GenerationEvent]:
        return list(self._events)

    def total_cost(self, user_id: Optional[str] = None) -> Decimal:
        """Estimated spend over the retained window, optionally for a single user."""
        return _sum_cost(e for e in self._events if user_id is None or e.user_id == user_id)

    def daily_cost(self, day: Optional[date] = None) -> Decimal:
        """Spend on a UTC calendar day, today by default."""
        day = day or self._clock().date()
        return _sum_cost(e for e in self._events if self._utc(e).date() == day)

    def monthly_cost(self, year: int, month: int) -> Decimal:
        """Spend in a UTC calendar month."""
        return _sum_cost(e for e in self._events if self._in_month(e, year, month))

    def user_monthly_cost(self, user_id: str, year: int, month: int) -> Decimal:
        return _sum_cost(
            e for e in self._events
            if e.user_id == user_id and self._in_month(e, year, month)
        )

    def _check_cost_thresholds(self, event: GenerationEvent) -> None:
        now = self._clock()
        today = now.date()

        daily = self.daily_cost(today)
        if daily > self._daily_threshold:
            self._alert("DAILY_COST_EXCEEDED", today.isoformat(), f"Daily cost: ${daily:.2f}")

        month_key = f"{now.year:04d}-{now.month:02d}"
        monthly = self.monthly_cost(now.year, now.month)
        if monthly > self._monthly_threshold:
            self._alert("MONTHLY_COST_EXCEEDED", month_key, f"Monthly cost: ${monthly:.2f}")

        user_monthly = self.user_monthly_cost(event.user_id, now.year, now.month)
        if user_monthly > self._user_monthly_threshold:
            self._alert(
                "USER_COST_EXCEEDED",
                month_key,
                f"User {event.user_id} monthly cost: ${user_monthly:.2f}",
                user_id=event.user_id,
            )

    def _alert(self, alert_type: str, period: str, message: str, user_id: str = "") -> None:
        key = (alert_type, period, user_id)
        if key in self._alerted:
            return
        self._alerted.add(key)
        logger.warning(f"ALERT [{alert_type}]: {message}")

    def _prune(self) -> None:
        now = self._clock()
        cutoff = now - self._retention
        while self._events and self._utc(self._events[0]) < cutoff:
            self._events.popleft()
        current = {now.date().isoformat(), f"{now.year:04d}-{now.month:02d}"}
        self._alerted = {key for key in self._alerted if key[1] in current}

    @staticmethod
    def _utc(event: GenerationEvent) -> datetime:
        return event.timestamp.astimezone(timezone.utc)

    def _in_month(self, event: GenerationEvent, year: int, month: int) -> bool:
        timestamp = self._utc(event)
        return timestamp.year == year and timestamp.month == month
