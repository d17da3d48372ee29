from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase

from rentals.models import Rental
from rentals.pricing import compute_total_amount, derive_status, rental_days, round_money

JAN_1 = datetime(2024, 1, 1, 10, 0, tzinfo=dt_timezone.utc)


def make_rental(**overrides):
    values = dict(
        issue_date=JAN_1,
        expected_return_date=JAN_1 + timedelta(days=14),
        rental_price_per_day=Decimal('2.50'),
        deposit_amount=Decimal('10.00'),
        fine_amount=Decimal('0.00'),
        discount_amount=Decimal('5.25'),
    )
    values.update(overrides)
    return Rental(**values)


class RentalDaysTests(SimpleTestCase):
    def test_whole_days(self):
        """Two weeks apart is fourteen days"""
        self.assertEqual(rental_days(JAN_1, JAN_1 + timedelta(days=14)), 14)

    def test_partial_day_rounds_up(self):
        """Any started day counts as a full day"""
        self.assertEqual(rental_days(JAN_1, JAN_1 + timedelta(days=2, minutes=1)), 3)

    def test_same_moment_counts_one_day(self):
        """A same-day return is charged for one day"""
        self.assertEqual(rental_days(JAN_1, JAN_1), 1)
        self.assertEqual(rental_days(JAN_1, JAN_1 + timedelta(hours=3)), 1)

    def test_end_before_start_counts_one_day(self):
        self.assertEqual(rental_days(JAN_1, JAN_1 - timedelta(days=3)), 1)


class RoundMoneyTests(SimpleTestCase):
    def test_rounds_half_up_to_cents(self):
        self.assertEqual(round_money(Decimal('5.255')), Decimal('5.26'))
        self.assertEqual(round_money(Decimal('5.254')), Decimal('5.25'))
        self.assertEqual(round_money(0), Decimal('0.00'))


class TotalAmountTests(SimpleTestCase):
    def test_open_rental_uses_evaluation_time(self):
        """Unreturned rentals are priced up to now"""
        rental = make_rental()
        total = compute_total_amount(rental, JAN_1 + timedelta(days=3))
        self.assertEqual(total, Decimal('2.50') * 3 - Decimal('5.25'))

    def test_returned_rental_uses_return_date(self):
        """Returned rentals are priced up to the return date, plus fine"""
        rental = make_rental(
            actual_return_date=JAN_1 + timedelta(days=16),
            fine_amount=Decimal('4.00'),
        )
        total = compute_total_amount(rental, JAN_1 + timedelta(days=40))
        self.assertEqual(total, Decimal('40.00') + Decimal('4.00') - Decimal('5.25'))

    def test_same_day_return_charges_one_day(self):
        rental = make_rental(actual_return_date=JAN_1 + timedelta(minutes=5))
        self.assertEqual(compute_total_amount(rental, JAN_1), Decimal('-2.75'))


class DeriveStatusTests(SimpleTestCase):
    def test_active_before_due_date(self):
        rental = make_rental()
        self.assertEqual(derive_status(rental, JAN_1 + timedelta(days=1)), 'active')

    def test_active_exactly_at_due_date(self):
        rental = make_rental()
        self.assertEqual(derive_status(rental, rental.expected_return_date), 'active')

    def test_overdue_after_due_date(self):
        rental = make_rental()
        self.assertEqual(derive_status(rental, JAN_1 + timedelta(days=15)), 'overdue')

    def test_returned_wins_over_dates(self):
        """A returned rental is returned whatever the clock says"""
        late = make_rental(actual_return_date=JAN_1 + timedelta(days=30))
        self.assertEqual(derive_status(late, JAN_1 + timedelta(days=60)), 'returned')
        early = make_rental(actual_return_date=JAN_1 + timedelta(days=1))
        self.assertEqual(derive_status(early, JAN_1), 'returned')
