"""
UserRepository for database operations on User model
"""

import re
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from database_models import User
from utils.errors import DuplicateKeyError, InvalidIdentifierError

ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def check_identifier(value: str, model: str) -> str:
    """Reject identifiers that cannot name a stored record."""
    if not isinstance(value, str) or not ID_PATTERN.match(value):
        raise InvalidIdentifierError(value, model)
    return value


class UserRepository:
    """
    Repository class for User database operations.
    Encapsulates all database logic for the User model.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def get_user_by_email(self, email: str, include_password: bool = False) -> Optional[User]:
        """
        Retrieve a user by email address.

        Args:
            email: User's email address (case-insensitive search)
            include_password: Load the credential hash, which is skipped by default

        Returns:
            User object if found, None otherwise
        """
        query = select(User).where(User.email == normalize_email(email))
        if include_password:
            query = query.options(undefer(User.password))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """
        Retrieve a user by ID.

        Raises:
            InvalidIdentifierError: if user_id is not a valid identifier
        """
        check_identifier(user_id, "User")
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_users(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.created_at))
        return list(result.scalars().all())

    async def create_user(self, user_data: dict) -> User:
        """
        Create a new user in the database.

        Args:
            user_data: Dictionary containing user data. Must include:
                - name: str
                - email: str
                - password: str (already hashed)

        Returns:
            Created User object

        Raises:
            DuplicateKeyError: if the email is already taken
        """
        email = normalize_email(user_data["email"])
        user = User(
            name=user_data["name"],
            email=email,
            password=user_data["password"],
        )
        self.db.add(user)
        try:
            await self.db.flush()  # Flush to get the ID without committing
        except IntegrityError as exc:
            raise DuplicateKeyError({"email": email}) from exc
        await self.db.refresh(user)
        return user
