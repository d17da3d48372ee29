"""Pure money and date helpers for rentals.

Nothing in here touches the database; the lifecycle in ``services`` calls
``compute_total_amount`` and ``derive_status`` before every save, and read
paths call ``derive_status`` to present a live status.
"""
import math
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal('0.01')
SECONDS_PER_DAY = 24 * 60 * 60

STATUS_ACTIVE = 'active'
STATUS_OVERDUE = 'overdue'
STATUS_RETURNED = 'returned'


def round_money(value):
    """Round to cents, half up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def rental_days(start, end):
    """Whole days between two datetimes, rounded up and never less than one."""
    seconds = (end - start).total_seconds()
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


def discount_amount(base_cost, reader):
    return round_money(base_cost - reader.discounted_price(base_cost))


def compute_total_amount(rental, now):
    end = rental.actual_return_date or now
    days = rental_days(rental.issue_date, end)
    total = rental.rental_price_per_day * days + rental.fine_amount - rental.discount_amount
    return round_money(total)


def derive_status(rental, now):
    if rental.actual_return_date is not None:
        return STATUS_RETURNED
    if now > rental.expected_return_date:
        return STATUS_OVERDUE
    return STATUS_ACTIVE
