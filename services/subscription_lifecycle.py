"""
Renewal date and status rules applied to every subscription write.

The functions here are pure so the rule can be exercised without a database;
the repository calls apply_lifecycle() right before flushing a record.
"""
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from dateutil.relativedelta import relativedelta

from utils.errors import RecordValidationError

ACTIVE = "active"
EXPIRED = "expired"

# Calendar steps per billing frequency. Month and year steps that land past
# the end of a shorter month roll the extra days into the next one
# (Jan 31 + 1 month -> Mar 2 in a leap year, Feb 29 + 1 year -> Mar 1).
FREQUENCY_STEPS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "monthly": relativedelta(months=1),
    "yearly": relativedelta(years=1),
}

START_DATE_MESSAGE = "Start date must be in the past"
RENEWAL_DATE_MESSAGE = "Renewal date must be after the start date"


def advance(start_date: datetime, frequency: Optional[str]) -> Optional[datetime]:
    """Return start_date moved forward by one billing period, or None if the frequency is unknown."""
    step = FREQUENCY_STEPS.get(frequency) if frequency else None
    if step is None or start_date is None:
        return None
    shifted = start_date + step
    if isinstance(step, relativedelta) and shifted.day != start_date.day:
        # relativedelta clamped to the month end; carry the overflow forward
        shifted += timedelta(days=start_date.day - shifted.day)
    return shifted


def derive_renewal(
    start_date: datetime,
    frequency: Optional[str],
    now: datetime,
    renewal_date: Optional[datetime] = None,
    status: Optional[str] = None,
) -> Tuple[Optional[datetime], str]:
    """
    Compute the renewal date and status a record must carry when saved.

    An explicit renewal_date is kept as is. A renewal date strictly before
    ``now`` forces the status to expired whatever it was before; a renewal
    landing exactly on ``now`` is still current.
    """
    if renewal_date is None:
        renewal_date = advance(start_date, frequency)

    status = status or ACTIVE
    if renewal_date is not None and renewal_date < now:
        status = EXPIRED

    return renewal_date, status


def validate_schedule(
    start_date: Optional[datetime],
    renewal_date: Optional[datetime],
    now: datetime,
) -> Dict[str, str]:
    """Return a field -> message mapping for every date constraint that fails."""
    errors = {}
    if start_date is None:
        errors["start_date"] = "Start date is required"
        return errors

    if not start_date < now:
        errors["start_date"] = START_DATE_MESSAGE
    if renewal_date is not None and not renewal_date > start_date:
        errors["renewal_date"] = RENEWAL_DATE_MESSAGE
    return errors


def apply_lifecycle(subscription, now: datetime) -> None:
    """
    Bring a subscription record in line with the lifecycle rule.

    Raises RecordValidationError (and leaves the record untouched) when the
    dates are inconsistent.
    """
    renewal_date, status = derive_renewal(
        subscription.start_date,
        subscription.frequency,
        now,
        renewal_date=subscription.renewal_date,
        status=subscription.status,
    )

    errors = validate_schedule(subscription.start_date, renewal_date, now)
    if errors:
        raise RecordValidationError(errors)

    subscription.renewal_date = renewal_date
    subscription.status = status
