from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class Currency(str, Enum):
    USD = "USD"
    PHP = "PHP"
    EUR = "EUR"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Category(str, Enum):
    SPORTS = "sports"
    NEWS = "news"
    ENTERTAINMENT = "entertainment"
    LIFESTYLE = "lifestyle"
    TECHNOLOGY = "technology"
    FINANCE = "finance"
    POLITICS = "politics"
    OTHERS = "others"


class Status(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


DEFAULT_CURRENCY = Currency.PHP


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Dates are stored as naive UTC; aware inputs are converted first."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class SubscriptionFields(BaseModel):
    @field_validator("name", "payment_method", mode="before", check_fields=False)
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("start_date", "renewal_date", check_fields=False)
    @classmethod
    def normalize_dates(cls, value):
        return to_naive_utc(value)


class SubscriptionCreate(SubscriptionFields):
    name: str = Field(min_length=2, max_length=100)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    currency: Currency = DEFAULT_CURRENCY
    frequency: Optional[Frequency] = None
    category: Category
    payment_method: str = Field(min_length=1, max_length=100)
    status: Optional[Status] = None
    start_date: datetime
    renewal_date: Optional[datetime] = None


class SubscriptionUpdate(SubscriptionFields):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    currency: Optional[Currency] = None
    frequency: Optional[Frequency] = None
    category: Optional[Category] = None
    payment_method: Optional[str] = Field(default=None, min_length=1, max_length=100)
    status: Optional[Status] = None
    start_date: Optional[datetime] = None
    renewal_date: Optional[datetime] = None


class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    price: Decimal
    currency: str
    frequency: Optional[str] = None
    category: str
    payment_method: str
    status: str
    start_date: datetime
    renewal_date: Optional[datetime] = None
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("price")
    def serialize_price(self, value: Decimal) -> float:
        # JSON clients receive prices as numbers
        return float(value)
