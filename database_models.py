import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import deferred

from database import Base


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """
    Registered account. The password column holds the credential hash and is
    left out of default loads.
    """
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = deferred(Column(String(255), nullable=False), raiseload=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Subscription(Base):
    """
    A tracked subscription. renewal_date and status are kept consistent with
    start_date and frequency by the lifecycle rule on every write.
    """
    __tablename__ = "subscriptions"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="PHP")
    frequency = Column(String(10), nullable=True)
    category = Column(String(20), nullable=False)
    payment_method = Column(String(100), nullable=False)
    status = Column(String(10), nullable=False, default="active")
    start_date = Column(DateTime, nullable=False)
    renewal_date = Column(DateTime, nullable=True)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
