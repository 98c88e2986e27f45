"""
Account management: sign-up, sign-in, sign-out and token resolution
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from auth_utils import create_jwt, decode_jwt, hash_password, verify_password
from config.settings import Settings
from crud.user import UserRepository
from database import transaction
from models.user import AuthPayload, UserPublic
from utils.errors import (
    ConflictError,
    DuplicateKeyError,
    InvalidIdentifierError,
    NotFoundError,
    UnauthorizedError,
)
from utils.result import Result

logger = logging.getLogger(__name__)


class AuthService:
    """
    Orchestrates account operations on top of UserRepository.

    Domain failures are returned as Result.failure(...); unexpected errors
    propagate to the caller after the transaction has been rolled back.
    """

    def __init__(self, session_factory: async_sessionmaker, settings: Settings):
        """
        Args:
            session_factory: factory producing the sessions each operation runs in
            settings: application settings (token secret and lifetime)
        """
        self.session_factory = session_factory
        self.settings = settings

    async def sign_up(self, name: str, email: str, password: str) -> Result:
        """
        Create an account and issue a token for it.

        Lookup, hashing and insert run in a single transaction, so a failure
        at any step leaves no user behind. The token is issued only once the
        transaction has committed.
        """
        try:
            async with transaction(self.session_factory) as session:
                user_repo = UserRepository(session)

                if await user_repo.get_user_by_email(email):
                    raise ConflictError("User already exists")

                user = await user_repo.create_user({
                    "name": name,
                    "email": email,
                    "password": hash_password(password),
                })
                public_user = UserPublic.model_validate(user)
        except ConflictError as e:
            logger.info("Sign-up rejected: email already registered")
            return Result.failure(e)
        except DuplicateKeyError:
            # Lost a race against a concurrent sign-up for the same email
            logger.info("Sign-up rejected: email registered concurrently")
            return Result.failure(ConflictError("User already exists"))

        token = create_jwt(public_user.id, self.settings)
        logger.info(f"User {public_user.id} signed up")
        return Result.success(
            AuthPayload(token=token, user=public_user),
            message="User signed up successfully",
        )

    async def sign_in(self, email: str, password: str) -> Result:
        async with self.session_factory() as session:
            user_repo = UserRepository(session)
            user = await user_repo.get_user_by_email(email, include_password=True)

            if not user:
                return Result.failure(NotFoundError("No account found"))

            if not verify_password(password, user.password):
                logger.info(f"Sign-in rejected for user {user.id}: incorrect password")
                return Result.failure(UnauthorizedError("Incorrect password"))

            public_user = UserPublic.model_validate(user)

        token = create_jwt(public_user.id, self.settings)
        logger.info(f"User {public_user.id} signed in")
        return Result.success(
            AuthPayload(token=token, user=public_user),
            message="User signed in successfully",
        )

    async def sign_out(self) -> Result:
        """Tokens are not revoked server side; the client drops its copy."""
        return Result.success(message="User signed out successfully")

    async def current_user(self, token: Optional[str]) -> Result:
        """Resolve a bearer token to the user it was issued for."""
        if not token:
            return Result.failure(UnauthorizedError("Missing authentication token"))

        payload = decode_jwt(token, self.settings)
        if not payload or not payload.get("sub"):
            return Result.failure(UnauthorizedError("Invalid or expired token"))

        async with self.session_factory() as session:
            try:
                user = await UserRepository(session).get_user_by_id(payload["sub"])
            except InvalidIdentifierError:
                user = None
            if user is None:
                return Result.failure(UnauthorizedError("User not found"))
            return Result.success(UserPublic.model_validate(user))
