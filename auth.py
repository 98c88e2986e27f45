"""
Authentication routes and dependencies
"""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Header
from sqlalchemy.ext.asyncio import async_sessionmaker

from config.settings import Settings, get_settings
from database import get_session_factory
from models.user import SignInRequest, SignUpRequest, UserPublic
from services.auth_service import AuthService
from utils.responses import success_response

AUTH_COOKIE = "auth_token"

# Create auth router
auth_router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(session_factory, settings)


def _set_auth_cookie(response, token: str, settings: Settings):
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="Lax",
        max_age=int(settings.token_lifetime.total_seconds()),
    )


@auth_router.post("/sign-up")
async def sign_up(
    request: SignUpRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Create a new user account"""
    result = await service.sign_up(request.name, request.email, request.password)
    payload = result.unwrap()

    response = success_response(payload, message=result.message)
    _set_auth_cookie(response, payload.token, service.settings)
    return response


@auth_router.post("/sign-in")
async def sign_in(
    request: SignInRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Sign in and get a JWT token"""
    result = await service.sign_in(request.email, request.password)
    payload = result.unwrap()

    response = success_response(payload, message=result.message)
    _set_auth_cookie(response, payload.token, service.settings)
    return response


@auth_router.post("/sign-out")
async def sign_out(service: AuthService = Depends(get_auth_service)):
    """Sign out and clear the auth token cookie"""
    result = await service.sign_out()
    response = success_response(message=result.message)
    response.delete_cookie(key=AUTH_COOKIE, httponly=True, samesite="Lax")
    return response


# Dependency for protected routes
async def get_current_user(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
    service: AuthService = Depends(get_auth_service),
) -> UserPublic:
    """
    Dependency function to get current authenticated user.

    Authentication priority:
    1. Authorization header (Bearer token) for API consumers
    2. auth_token cookie set by sign-in/sign-up
    """
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip()
    elif auth_token:
        token = auth_token

    result = await service.current_user(token)
    return result.unwrap()


@auth_router.get("/me")
async def me(user: UserPublic = Depends(get_current_user)):
    return success_response(user, message="Current user")
