from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from crud.subscription import SubscriptionRepository
from crud.user import UserRepository
from database import get_db
from models.subscription import SubscriptionOut
from models.user import UserPublic
from utils.errors import NotFoundError, UnauthorizedError
from utils.responses import success_response

user_router = APIRouter(prefix="/users", tags=["users"])


@user_router.get("")
async def list_users(
    db: AsyncSession = Depends(get_db),
    current_user: UserPublic = Depends(get_current_user),
):
    users = await UserRepository(db).list_users()
    data: List[UserPublic] = [UserPublic.model_validate(user) for user in users]
    return success_response(data, message="Users fetched")


@user_router.get("/{user_id}")
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserPublic = Depends(get_current_user),
):
    user = await UserRepository(db).get_user_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return success_response(UserPublic.model_validate(user), message="User fetched")


@user_router.get("/{user_id}/subscriptions")
async def list_user_subscriptions(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserPublic = Depends(get_current_user),
):
    if user_id != current_user.id:
        raise UnauthorizedError("You can only view your own subscriptions")
    subscriptions = await SubscriptionRepository(db).list_for_user(user_id)
    data = [SubscriptionOut.model_validate(item) for item in subscriptions]
    return success_response(data, message="Subscriptions fetched")


# Accounts are created through /auth/sign-up and never edited here
@user_router.post("")
async def create_user():
    return {"title": "CREATE a new user"}


@user_router.put("/{user_id}")
async def update_user(user_id: str):
    return {"title": "UPDATE specific user"}


@user_router.delete("/{user_id}")
async def delete_user(user_id: str):
    return {"title": "DELETE specific user"}
