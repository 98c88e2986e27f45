"""
Tests for the account sign-up / sign-in flows
"""
import asyncio

import pytest
from sqlalchemy import func, select

from auth_utils import decode_jwt, verify_password
from crud.user import UserRepository
from database_models import User
from services.auth_service import AuthService
from utils.errors import ConflictError, NotFoundError, UnauthorizedError


@pytest.fixture
def service(session_factory, settings):
    return AuthService(session_factory, settings)


async def count_users(session_factory, email=None) -> int:
    async with session_factory() as session:
        query = select(func.count()).select_from(User)
        if email is not None:
            query = query.where(User.email == email)
        return (await session.execute(query)).scalar_one()


@pytest.mark.asyncio
async def test_sign_up_creates_user_and_token(service, session_factory, settings):
    result = await service.sign_up("Ada", "Ada@Example.com", "correct horse")

    assert result.ok
    assert result.message == "User signed up successfully"
    payload = result.data
    assert payload.user.name == "Ada"
    assert payload.user.email == "ada@example.com"
    assert "password" not in payload.user.model_dump()
    assert decode_jwt(payload.token, settings)["sub"] == payload.user.id

    async with session_factory() as session:
        stored = await UserRepository(session).get_user_by_email("ada@example.com", include_password=True)
    # Only the hash is stored
    assert stored.password != "correct horse"
    assert verify_password("correct horse", stored.password)


@pytest.mark.asyncio
async def test_sign_up_duplicate_email_conflicts(service, session_factory):
    assert (await service.sign_up("Ada", "ada@example.com", "pw-one")).ok

    result = await service.sign_up("Other", "ADA@example.com", "pw-two")

    assert not result.ok
    assert isinstance(result.error, ConflictError)
    assert result.error.status_code == 409
    assert result.error.message == "User already exists"
    assert await count_users(session_factory) == 1


@pytest.mark.asyncio
async def test_sign_up_write_failure_leaves_no_user(service, session_factory, monkeypatch):
    original_create = UserRepository.create_user

    async def create_then_fail(self, user_data):
        await original_create(self, user_data)
        raise RuntimeError("simulated write error")

    monkeypatch.setattr(UserRepository, "create_user", create_then_fail)

    with pytest.raises(RuntimeError, match="simulated write error"):
        await service.sign_up("Ada", "ada@example.com", "secret")

    assert await count_users(session_factory, "ada@example.com") == 0


@pytest.mark.asyncio
async def test_concurrent_sign_ups_have_one_winner(service, session_factory):
    results = await asyncio.gather(
        service.sign_up("First", "race@example.com", "pw-first"),
        service.sign_up("Second", "race@example.com", "pw-second"),
    )

    winners = [result for result in results if result.ok]
    losers = [result for result in results if not result.ok]
    assert len(winners) == 1
    assert winners[0].data.token
    assert len(losers) == 1
    assert isinstance(losers[0].error, ConflictError)
    assert await count_users(session_factory, "race@example.com") == 1


@pytest.mark.asyncio
async def test_sign_in_returns_token_and_public_fields(service, settings):
    created = (await service.sign_up("Ada", "ada@example.com", "secret")).data

    result = await service.sign_in("ada@example.com", "secret")

    assert result.ok
    assert result.message == "User signed in successfully"
    assert result.data.user.id == created.user.id
    assert "password" not in result.data.user.model_dump()
    assert decode_jwt(result.data.token, settings)["sub"] == created.user.id


@pytest.mark.asyncio
async def test_sign_in_wrong_password_is_unauthorized(service):
    await service.sign_up("Ada", "ada@example.com", "secret")

    result = await service.sign_in("ada@example.com", "not-the-secret")

    assert isinstance(result.error, UnauthorizedError)
    assert result.error.status_code == 401


@pytest.mark.asyncio
async def test_sign_in_unknown_email_is_not_found(service):
    result = await service.sign_in("nobody@example.com", "secret")

    assert isinstance(result.error, NotFoundError)
    assert result.error.status_code == 404
    assert result.error.message == "No account found"


@pytest.mark.asyncio
async def test_sign_out_always_succeeds(service):
    result = await service.sign_out()
    assert result.ok
    assert result.message == "User signed out successfully"


@pytest.mark.asyncio
async def test_current_user_resolves_token(service):
    created = (await service.sign_up("Ada", "ada@example.com", "secret")).data

    result = await service.current_user(created.token)
    assert result.data.id == created.user.id

    assert isinstance((await service.current_user(None)).error, UnauthorizedError)
    assert isinstance((await service.current_user("not-a-token")).error, UnauthorizedError)
