"""
SubscriptionRepository for database operations on Subscription model
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crud.user import check_identifier
from database_models import Subscription, User, utcnow
from services.subscription_lifecycle import apply_lifecycle
from utils.errors import NotFoundError, RecordValidationError

WRITABLE_FIELDS = (
    "name",
    "price",
    "currency",
    "frequency",
    "category",
    "payment_method",
    "status",
    "start_date",
    "renewal_date",
)
# Fields a caller may clear by sending null
CLEARABLE_FIELDS = ("frequency", "renewal_date")


def _plain(value):
    return value.value if isinstance(value, Enum) else value


class SubscriptionRepository:
    """
    Repository class for Subscription database operations.
    Every write goes through the lifecycle rule before it is flushed.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, subscription_id: str) -> Subscription:
        """
        Retrieve a subscription by ID.

        Raises:
            InvalidIdentifierError: if the ID is malformed
            NotFoundError: if no such subscription exists
        """
        check_identifier(subscription_id, "Subscription")
        subscription = await self.db.get(Subscription, subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription not found")
        return subscription

    async def list_for_user(self, user_id: str) -> List[Subscription]:
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at)
        )
        return list(result.scalars().all())

    async def upcoming_renewals(self, user_id: str, now: datetime, days: int) -> List[Subscription]:
        """Active subscriptions of a user renewing within the next ``days`` days."""
        result = await self.db.execute(
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status == "active",
                Subscription.renewal_date >= now,
                Subscription.renewal_date <= now + timedelta(days=days),
            )
            .order_by(Subscription.renewal_date)
        )
        return list(result.scalars().all())

    async def create(self, user_id: str, data: dict, now: Optional[datetime] = None) -> Subscription:
        """
        Create a subscription owned by ``user_id``.

        Raises:
            RecordValidationError: if the owner does not exist or the dates are inconsistent
        """
        if not user_id or await self.db.get(User, user_id) is None:
            raise RecordValidationError({"user": "User is required"})

        subscription = Subscription(user_id=user_id)
        for field in WRITABLE_FIELDS:
            if data.get(field) is not None:
                setattr(subscription, field, _plain(data[field]))
        if subscription.currency is None:
            subscription.currency = "PHP"

        return await self._save(subscription, now)

    async def update(self, subscription: Subscription, changes: dict, now: Optional[datetime] = None) -> Subscription:
        for field, value in changes.items():
            if field not in WRITABLE_FIELDS:
                continue
            if value is not None or field in CLEARABLE_FIELDS:
                setattr(subscription, field, _plain(value))
        return await self._save(subscription, now)

    async def cancel(self, subscription: Subscription, now: Optional[datetime] = None) -> Subscription:
        subscription.status = "cancelled"
        return await self._save(subscription, now)

    async def delete(self, subscription: Subscription) -> None:
        await self.db.delete(subscription)
        await self.db.flush()

    async def _save(self, subscription: Subscription, now: Optional[datetime]) -> Subscription:
        apply_lifecycle(subscription, now or utcnow())
        self.db.add(subscription)
        await self.db.flush()
        await self.db.refresh(subscription)
        return subscription
