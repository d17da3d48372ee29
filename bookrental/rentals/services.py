"""Rental lifecycle: issuing and returning books, plus reporting."""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from .exceptions import (
    AllocationRollbackFailed, AlreadyReturned, BookNotFound, BookUnavailable,
    DuplicateBook, DuplicateReader, ReaderInactive, ReaderNotFound,
    RentalError, RentalLimitExceeded,
)
from .models import Book, Reader, Rental
from .pricing import (
    STATUS_ACTIVE, STATUS_OVERDUE, compute_total_amount, derive_status,
    discount_amount, rental_days, round_money,
)

logger = logging.getLogger(__name__)


def max_active_rentals():
    return getattr(settings, 'RENTAL_MAX_ACTIVE_PER_READER', 3)


@dataclass
class ReturnResult:
    rental: Rental
    warnings: List[str] = field(default_factory=list)


def ensure_book_unique(title, author, exclude_pk=None):
    books = Book.objects.filter(title=title, author=author)
    if exclude_pk is not None:
        books = books.exclude(pk=exclude_pk)
    if books.exists():
        raise DuplicateBook()


def ensure_reader_contacts_unique(phone=None, email=None, exclude_pk=None):
    readers = Reader.objects.all()
    if exclude_pk is not None:
        readers = readers.exclude(pk=exclude_pk)
    if phone and readers.filter(phone=phone).exists():
        raise DuplicateReader('Reader with this phone number already exists.')
    if email and readers.filter(email=email).exists():
        raise DuplicateReader('Reader with this email already exists.')


def apply_derived_fields(rental, now):
    rental.total_amount = compute_total_amount(rental, now)
    rental.status = derive_status(rental, now)


def create_rental(book_id, reader_id, expected_return_date, notes=None, now=None) -> Rental:
    """Issue a copy of a book to a reader.

    The rental is priced and built first, then the copy is reserved with an
    atomic conditional update and the row is written.  Any failure after the
    reservation hands the copy back; if handing it back fails too,
    ``AllocationRollbackFailed`` carries both errors.

    The per-reader limit is checked before allocation and is best-effort under
    concurrent requests for the same reader.
    """
    now = now or timezone.now()

    try:
        book = Book.objects.get(pk=book_id)
    except Book.DoesNotExist:
        raise BookNotFound()
    if not book.is_available:
        raise BookUnavailable()

    try:
        reader = Reader.objects.get(pk=reader_id)
    except Reader.DoesNotExist:
        raise ReaderNotFound()
    if not reader.is_active:
        raise ReaderInactive()

    limit = max_active_rentals()
    if Rental.objects.outstanding().filter(reader=reader).count() >= limit:
        logger.warning("Reader %s refused a rental: limit of %s reached", reader.pk, limit)
        raise RentalLimitExceeded(f"Reader has reached maximum rental limit ({limit} books).")

    base_cost = book.rental_price_per_day * rental_days(now, expected_return_date)
    rental = Rental(
        book=book,
        reader=reader,
        issue_date=now,
        expected_return_date=expected_return_date,
        deposit_amount=book.deposit_amount,
        rental_price_per_day=book.rental_price_per_day,
        fine_amount=Decimal('0.00'),
        discount_amount=discount_amount(base_cost, reader),
        notes=notes or '',
    )
    apply_derived_fields(rental, now)

    book.allocate_copy()

    try:
        with transaction.atomic():
            rental.save()
    except Exception as exc:
        _release_after_failed_save(book, exc)
        raise

    logger.info("Rental %s created: book %s to reader %s", rental.pk, book.pk, reader.pk)
    return rental


def _release_after_failed_save(book, cause):
    try:
        book.release_copy()
    except Exception as rollback_error:
        logger.error(
            "Integrity error: copy of book %s stays allocated after failed rental save",
            book.pk, exc_info=True,
        )
        raise AllocationRollbackFailed(cause, rollback_error) from cause
    logger.warning("Rental save failed for book %s, copy released: %s", book.pk, cause)


def return_rental(rental, fine_amount=0, notes=None, now=None) -> ReturnResult:
    """Close a rental and put the copy back on the shelf.

    Once the rental is saved as returned it stays returned.  A failure to
    release the copy is logged and reported in ``ReturnResult.warnings``.
    """
    now = now or timezone.now()

    with transaction.atomic():
        rental = Rental.objects.select_for_update().select_related('book', 'reader').get(pk=rental.pk)
        if rental.actual_return_date is not None:
            raise AlreadyReturned()
        rental.actual_return_date = now
        rental.fine_amount = max(Decimal('0.00'), round_money(fine_amount or 0))
        if notes:
            rental.notes = notes
        apply_derived_fields(rental, now)
        rental.save()

    result = ReturnResult(rental=rental)
    try:
        rental.book.release_copy()
    except RentalError as exc:
        logger.error(
            "Integrity error: rental %s returned but book %s copy not released",
            rental.pk, rental.book_id, exc_info=True,
        )
        result.warnings.append(f"Inventory not updated: {exc.detail}")

    logger.info("Rental %s returned, total %s", rental.pk, rental.total_amount)
    return result


def rental_statistics(now=None):
    now = now or timezone.now()
    revenue = Rental.objects.returned().aggregate(total=Sum('total_amount'))['total']
    return {
        'active_rentals': Rental.objects.active(now).count(),
        'overdue_rentals': Rental.objects.overdue(now).count(),
        'total_rentals': Rental.objects.count(),
        'total_revenue': round_money(revenue or 0),
    }


def refresh_statuses(now=None):
    """Rewrite stored statuses of unreturned rentals to match the clock."""
    now = now or timezone.now()
    overdue = Rental.objects.overdue(now).exclude(status=STATUS_OVERDUE).update(status=STATUS_OVERDUE)
    active = Rental.objects.active(now).exclude(status=STATUS_ACTIVE).update(status=STATUS_ACTIVE)
    return overdue, active
