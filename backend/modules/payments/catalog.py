"""
Static product catalog.

Credit packages and subscription plans are immutable configuration data,
built once into read-only lookup tables.
"""

from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from .models import CreditPackage, SubscriptionPlan


DEFAULT_CREDIT_PACKAGES = (
    CreditPackage(
        id="credits_10",
        name="Starter Pack",
        credits=10,
        price=Decimal("1.99"),
    ),
    CreditPackage(
        id="credits_25",
        name="Popular Pack",
        credits=25,
        price=Decimal("3.99"),
        popular=True,
    ),
    CreditPackage(
        id="credits_50",
        name="Value Pack",
        credits=50,
        price=Decimal("6.99"),
    ),
    CreditPackage(
        id="credits_100",
        name="Power Pack",
        credits=100,
        price=Decimal("11.99"),
    ),
    CreditPackage(
        id="credits_250",
        name="Ultimate Pack",
        credits=250,
        price=Decimal("24.99"),
    ),
)

DEFAULT_SUBSCRIPTION_PLANS = (
    SubscriptionPlan(
        id="premium_monthly",
        name="Premium Monthly",
        monthly_credits=100,
        price=Decimal("9.99"),
        duration="monthly",
        features=(
            "100 credits per month",
            "Priority processing",
            "Exclusive styles",
            "No ads",
        ),
    ),
    SubscriptionPlan(
        id="premium_yearly",
        name="Premium Yearly",
        monthly_credits=100,
        price=Decimal("99.99"),  # 2 months free
        duration="yearly",
        features=(
            "100 credits per month",
            "Priority processing",
            "Exclusive styles",
            "No ads",
            "2 months free",
        ),
    ),
)


class CreditCatalog:
    """Read-only lookup of credit packages and subscription plans by ID."""

    def __init__(
        self,
        packages: Iterable[CreditPackage] = DEFAULT_CREDIT_PACKAGES,
        plans: Iterable[SubscriptionPlan] = DEFAULT_SUBSCRIPTION_PLANS,
    ):
        self._packages: Mapping[str, CreditPackage] = MappingProxyType(
            {package.id: package for package in packages}
        )
        self._plans: Mapping[str, SubscriptionPlan] = MappingProxyType(
            {plan.id: plan for plan in plans}
        )

    @property
    def packages(self) -> list[CreditPackage]:
        return list(self._packages.values())

    @property
    def plans(self) -> list[SubscriptionPlan]:
        return list(self._plans.values())

    def get_package(self, package_id: str) -> Optional[CreditPackage]:
        return self._packages.get(package_id)

    def get_plan(self, plan_id: str) -> Optional[SubscriptionPlan]:
        return self._plans.get(plan_id)
