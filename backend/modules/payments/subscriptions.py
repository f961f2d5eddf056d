"""
Subscription lifecycle.

A paid plan receipt either starts a subscription or extends the current
one by one billing period. Credits for the period are granted through
the ledger while the user's subscription lock is held, and the
subscription change is rolled back if granting fails.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar

from dateutil.relativedelta import relativedelta

from .catalog import CreditCatalog
from .exceptions import NoActiveSubscriptionError
from .interfaces import ISubscriptionManager, ISubscriptionStore
from .models import (
    Subscription,
    SubscriptionBenefits,
    SubscriptionOverview,
    SubscriptionPlan,
    SubscriptionStatus,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

FREE_TIER_FEATURES = ("Basic sticker generation", "Standard processing speed")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def period_end(start: datetime, plan: SubscriptionPlan) -> datetime:
    """End of one billing period of the plan starting at start."""
    if plan.duration == "yearly":
        return start + relativedelta(years=1)
    return start + relativedelta(months=1)


class SubscriptionManager(ISubscriptionManager):
    """Starts, renews and cancels subscriptions."""

    def __init__(
        self,
        store: ISubscriptionStore,
        catalog: Optional[CreditCatalog] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._catalog = catalog or CreditCatalog()
        self._clock = clock
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_active(self, user_id: str) -> Optional[Subscription]:
        """The subscription currently granting benefits, if any."""
        now = self._clock()
        latest = await self._store.get_latest(user_id)
        if latest is None:
            return None
        if latest.is_current(now):
            return latest
        if latest.status != SubscriptionStatus.EXPIRED:
            await self._store.save(latest.model_copy(update={"status": SubscriptionStatus.EXPIRED}))
            logger.info(f"Subscription {latest.id} for {user_id} expired")
        return None

    async def activate(
        self,
        user_id: str,
        plan: SubscriptionPlan,
        transaction_id: str,
        grant: Callable[[], Awaitable[T]],
    ) -> tuple[Subscription, T]:
        """
        Start or renew a subscription for a paid period, then run grant.

        A current subscription is extended from its end date and moved to
        the purchased plan; otherwise a new one starts now. If grant fails
        the previous subscription state is restored.

        Returns:
            The saved subscription and grant's result
        """
        async with self._locks[user_id]:
            now = self._clock()
            previous = await self.get_active(user_id)

            if previous is None:
                subscription = Subscription(
                    user_id=user_id,
                    plan_id=plan.id,
                    start_date=now,
                    end_date=period_end(now, plan),
                    last_transaction_id=transaction_id,
                    last_payment_date=now,
                )
            else:
                subscription = previous.model_copy(update={
                    "plan_id": plan.id,
                    "status": SubscriptionStatus.ACTIVE,
                    "end_date": period_end(previous.end_date, plan),
                    "auto_renew": True,
                    "last_transaction_id": transaction_id,
                    "last_payment_date": now,
                    "canceled_at": None,
                    "cancel_reason": None,
                })
            await self._store.save(subscription)

            try:
                granted = await grant()
            except Exception:
                if previous is None:
                    await self._store.delete(subscription.id)
                else:
                    await self._store.save(previous)
                raise

        action = "Started" if previous is None else "Renewed"
        logger.info(
            f"{action} subscription {subscription.id} ({plan.id}) for {user_id} "
            f"until {subscription.end_date.isoformat()}"
        )
        return subscription, granted

    async def cancel(self, user_id: str, reason: str) -> Subscription:
        async with self._locks[user_id]:
            current = await self.get_active(user_id)
            if current is None:
                raise NoActiveSubscriptionError(user_id)
            canceled = current.model_copy(update={
                "status": SubscriptionStatus.CANCELED,
                "auto_renew": False,
                "canceled_at": self._clock(),
                "cancel_reason": reason,
            })
            await self._store.save(canceled)

        logger.info(f"Canceled subscription {canceled.id} for {user_id}: {reason}")
        return canceled

    async def get_benefits(self, user_id: str) -> SubscriptionBenefits:
        return (await self.get_overview(user_id)).benefits

    async def get_overview(self, user_id: str) -> SubscriptionOverview:
        current = await self.get_active(user_id)
        plan = self._catalog.get_plan(current.plan_id) if current else None
        if current is None or plan is None:
            return SubscriptionOverview(
                benefits=SubscriptionBenefits(features=list(FREE_TIER_FEATURES)),
            )
        return SubscriptionOverview(
            subscription=current,
            plan=plan,
            days_remaining=current.days_remaining(self._clock()),
            benefits=SubscriptionBenefits(
                monthly_credits=plan.monthly_credits,
                priority_processing=True,
                exclusive_styles=True,
                no_ads=True,
                features=list(plan.features),
            ),
        )

    async def history(self, user_id: str) -> list[Subscription]:
        """All of a user's subscriptions, most recently started first."""
        return await self._store.list_for_user(user_id)
