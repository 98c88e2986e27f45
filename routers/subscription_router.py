import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from config.settings import Settings, get_settings
from crud.subscription import SubscriptionRepository
from database import get_db
from database_models import utcnow
from models.subscription import SubscriptionCreate, SubscriptionOut, SubscriptionUpdate
from models.user import UserPublic
from utils.errors import NotFoundError
from utils.responses import success_response

logger = logging.getLogger(__name__)

subscription_router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


async def _owned(repo: SubscriptionRepository, subscription_id: str, user: UserPublic):
    subscription = await repo.get(subscription_id)
    # Other users' records are reported as missing
    if subscription.user_id != user.id:
        raise NotFoundError("Subscription not found")
    return subscription


@subscription_router.get("")
async def list_subscriptions(
    db: AsyncSession = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    subscriptions = await SubscriptionRepository(db).list_for_user(user.id)
    data = [SubscriptionOut.model_validate(item) for item in subscriptions]
    return success_response(data, message="Subscriptions fetched")


@subscription_router.get("/upcoming-renewals")
async def upcoming_renewals(
    db: AsyncSession = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    subscriptions = await SubscriptionRepository(db).upcoming_renewals(
        user.id, utcnow(), settings.upcoming_renewal_days
    )
    data = [SubscriptionOut.model_validate(item) for item in subscriptions]
    return success_response(data, message="Upcoming renewals fetched")


@subscription_router.get("/{subscription_id}")
async def get_subscription(
    subscription_id: str,
    db: AsyncSession = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    subscription = await _owned(SubscriptionRepository(db), subscription_id, user)
    return success_response(SubscriptionOut.model_validate(subscription), message="Subscription fetched")


@subscription_router.post("", status_code=201)
async def create_subscription(
    request: SubscriptionCreate,
    db: AsyncSession = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    subscription = await SubscriptionRepository(db).create(user.id, request.model_dump())
    logger.info(f"Subscription {subscription.id} created for user {user.id}")
    return success_response(
        SubscriptionOut.model_validate(subscription),
        message="Subscription created successfully",
        status=201,
    )


@subscription_router.put("/{subscription_id}")
async def update_subscription(
    subscription_id: str,
    request: SubscriptionUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    repo = SubscriptionRepository(db)
    subscription = await _owned(repo, subscription_id, user)
    subscription = await repo.update(subscription, request.model_dump(exclude_unset=True))
    return success_response(SubscriptionOut.model_validate(subscription), message="Subscription updated successfully")


@subscription_router.delete("/{subscription_id}")
async def delete_subscription(
    subscription_id: str,
    db: AsyncSession = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    repo = SubscriptionRepository(db)
    subscription = await _owned(repo, subscription_id, user)
    await repo.delete(subscription)
    return success_response(message="Subscription deleted successfully")


@subscription_router.put("/{subscription_id}/cancellation")
async def cancel_subscription(
    subscription_id: str,
    db: AsyncSession = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    repo = SubscriptionRepository(db)
    subscription = await _owned(repo, subscription_id, user)
    subscription = await repo.cancel(subscription)
    return success_response(SubscriptionOut.model_validate(subscription), message="Subscription cancelled")
