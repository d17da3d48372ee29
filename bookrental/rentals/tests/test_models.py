import threading
from datetime import timedelta
from decimal import Decimal
from unittest import skipIf

from django.db import connection, models
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from rentals.exceptions import InventoryExhausted, InventoryOverflow, InvalidInventoryState
from rentals.models import Book, Reader, Rental, discount_for_category


def create_book(**overrides):
    values = dict(
        title='Test Book',
        author='John Doe',
        genre='Fiction',
        deposit_amount=Decimal('10.00'),
        rental_price_per_day=Decimal('2.50'),
        total_copies=2,
    )
    values.update(overrides)
    return Book.objects.create(**values)


def create_reader(**overrides):
    values = dict(
        last_name='Doe',
        first_name='Jane',
        address='1 Main Street',
        phone='+10000000001',
        category='regular',
    )
    values.update(overrides)
    return Reader.objects.create(**values)


class BookInventoryTests(TestCase):
    def setUp(self):
        self.book = create_book()

    def test_new_book_has_all_copies_available(self):
        """available_copies starts at total_copies"""
        self.assertEqual(self.book.available_copies, 2)
        self.assertTrue(self.book.is_available)

    def test_allocate_and_release(self):
        self.book.allocate_copy()
        self.assertEqual(self.book.available_copies, 1)
        self.book.release_copy()
        self.assertEqual(self.book.available_copies, 2)
        self.book.refresh_from_db()
        self.assertEqual(self.book.available_copies, 2)

    def test_allocate_when_exhausted_fails_without_decrement(self):
        """No copies left: allocation fails and the counter stays at zero"""
        self.book.allocate_copy()
        self.book.allocate_copy()
        with self.assertRaises(InventoryExhausted):
            self.book.allocate_copy()
        self.book.refresh_from_db()
        self.assertEqual(self.book.available_copies, 0)
        self.assertFalse(self.book.is_available)

    def test_allocate_inactive_book_fails(self):
        self.book.deactivate()
        with self.assertRaises(InventoryExhausted):
            self.book.allocate_copy()
        self.book.refresh_from_db()
        self.assertEqual(self.book.available_copies, 2)

    def test_release_when_full_fails_without_increment(self):
        """Double returns cannot push available_copies past total_copies"""
        with self.assertRaises(InventoryOverflow):
            self.book.release_copy()
        self.book.refresh_from_db()
        self.assertEqual(self.book.available_copies, 2)

    def test_stale_readers_cannot_both_take_last_copy(self):
        """Two callers that both saw one copy left: exactly one succeeds"""
        book = create_book(title='Last Copy', total_copies=1)
        first = Book.objects.get(pk=book.pk)
        second = Book.objects.get(pk=book.pk)
        self.assertTrue(first.is_available)
        self.assertTrue(second.is_available)

        first.allocate_copy()
        with self.assertRaises(InventoryExhausted):
            second.allocate_copy()

        book.refresh_from_db()
        self.assertEqual(book.available_copies, 0)

    def test_counter_bounds_hold_over_mixed_sequence(self):
        for operation in ['allocate', 'allocate', 'allocate', 'release', 'release', 'release', 'allocate']:
            try:
                getattr(self.book, f'{operation}_copy')()
            except (InventoryExhausted, InventoryOverflow):
                pass
            self.book.refresh_from_db()
            self.assertTrue(0 <= self.book.available_copies <= self.book.total_copies)
        self.assertEqual(self.book.available_copies, 1)

    def test_save_rejects_available_above_total(self):
        """Invalid counters abort the write"""
        self.book.available_copies = 5
        with self.assertRaises(InvalidInventoryState):
            self.book.save()
        self.book.refresh_from_db()
        self.assertEqual(self.book.available_copies, 2)

    def test_save_rejects_total_below_available(self):
        self.book.total_copies = 1
        with self.assertRaises(InvalidInventoryState):
            self.book.save()

    def test_save_rejects_zero_total(self):
        with self.assertRaises(InvalidInventoryState):
            create_book(title='Nothing', total_copies=0)

    def test_deactivate_keeps_record(self):
        """Books are soft-deleted"""
        self.book.deactivate()
        self.assertTrue(Book.objects.filter(pk=self.book.pk, is_active=False).exists())
        self.assertFalse(self.book.is_available)


class ReaderDiscountTests(TestCase):
    def test_category_mapping(self):
        expected = {'regular': 0, 'student': 15, 'senior': 20, 'employee': 10}
        for category, percentage in expected.items():
            self.assertEqual(discount_for_category(category), percentage)

    def test_discount_derived_on_save_regardless_of_input(self):
        """Supplied discount_percentage values are overwritten from the category"""
        for index, (category, percentage) in enumerate(
            [('regular', 0), ('student', 15), ('senior', 20), ('employee', 10)]
        ):
            reader = create_reader(phone=f'+1555000{index}', category=category, discount_percentage=99)
            reader.refresh_from_db()
            self.assertEqual(reader.discount_percentage, percentage)

    def test_category_change_updates_discount(self):
        reader = create_reader(category='student')
        reader.category = 'senior'
        reader.save(update_fields=['category'])
        reader.refresh_from_db()
        self.assertEqual(reader.discount_percentage, 20)

    def test_discounted_price(self):
        reader = create_reader(category='student')
        self.assertEqual(reader.discounted_price(Decimal('35.00')), Decimal('29.75'))
        regular = create_reader(phone='+10000000002')
        self.assertEqual(regular.discounted_price(Decimal('35.00')), Decimal('35.00'))

    def test_full_name(self):
        reader = create_reader(middle_name='Ann')
        self.assertEqual(reader.full_name, 'Doe Jane Ann')
        reader.middle_name = ''
        self.assertEqual(str(reader), 'Doe Jane')


class RentalQuerySetTests(TestCase):
    def setUp(self):
        self.book = create_book(total_copies=5)
        self.reader = create_reader()
        self.now = timezone.now()
        terms = dict(
            book=self.book, reader=self.reader,
            deposit_amount=Decimal('10.00'), rental_price_per_day=Decimal('2.50'),
        )
        self.active = Rental.objects.create(
            expected_return_date=self.now + timedelta(days=3), **terms
        )
        # Stored status is stale on purpose: reads go by the dates.
        self.overdue = Rental.objects.create(
            issue_date=self.now - timedelta(days=10),
            expected_return_date=self.now - timedelta(days=1), status='active', **terms
        )
        self.returned = Rental.objects.create(
            issue_date=self.now - timedelta(days=10),
            expected_return_date=self.now - timedelta(days=5),
            actual_return_date=self.now - timedelta(days=6), status='returned', **terms
        )

    def test_views_by_date(self):
        self.assertEqual(list(Rental.objects.active(self.now)), [self.active])
        self.assertEqual(list(Rental.objects.overdue(self.now)), [self.overdue])
        self.assertEqual(list(Rental.objects.returned()), [self.returned])
        self.assertEqual(Rental.objects.outstanding().count(), 2)

    def test_with_status(self):
        self.assertEqual(list(Rental.objects.with_status('overdue', self.now)), [self.overdue])
        self.assertEqual(Rental.objects.with_status('unknown', self.now).count(), 0)

    def test_active_becomes_overdue_as_time_passes(self):
        """No write is needed for an active rental to read as overdue"""
        later = self.now + timedelta(days=4)
        self.assertIn(self.active, Rental.objects.overdue(later))
        self.assertEqual(
            Rental.objects.filter(pk=self.active.pk).values_list('status', flat=True).get(), 'active'
        )

    def test_protects_referenced_book(self):
        with self.assertRaises(models.ProtectedError):
            self.book.delete()


@skipIf(connection.vendor == 'sqlite', "needs a database with concurrent writers")
class ConcurrentAllocationTests(TransactionTestCase):
    def test_simultaneous_allocations_take_last_copy_once(self):
        """Threads released together: exactly one gets the last copy"""
        book = create_book(title='Last Copy', total_copies=1)
        workers = 4
        barrier = threading.Barrier(workers)
        outcomes = []
        lock = threading.Lock()

        def allocate():
            try:
                copy = Book.objects.get(pk=book.pk)
                barrier.wait()
                try:
                    copy.allocate_copy()
                    result = 'allocated'
                except InventoryExhausted:
                    result = 'exhausted'
                with lock:
                    outcomes.append(result)
            finally:
                connection.close()

        threads = [threading.Thread(target=allocate) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes), ['allocated'] + ['exhausted'] * (workers - 1))
        book.refresh_from_db()
        self.assertEqual(book.available_copies, 0)
