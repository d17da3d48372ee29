"""Typed failures raised by the rental core.

Each exception is a DRF ``APIException`` so the default exception handler turns
it into a response with the right status code.  ``kind`` classifies the failure
independently of HTTP as ``not_found``, ``conflict`` or ``invalid_state``.
Request validation stays with DRF's own ``ValidationError``.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class RentalError(APIException):
    kind = 'invalid_state'
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(RentalError):
    kind = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'


class ConflictError(RentalError):
    kind = 'conflict'
    status_code = status.HTTP_409_CONFLICT
    default_code = 'conflict'


class InvalidStateError(RentalError):
    kind = 'invalid_state'
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'invalid_state'


class BookNotFound(NotFoundError):
    default_detail = 'Book not found.'
    default_code = 'book_not_found'


class ReaderNotFound(NotFoundError):
    default_detail = 'Reader not found.'
    default_code = 'reader_not_found'


class ReaderInactive(ReaderNotFound):
    default_detail = 'Reader is not active.'
    default_code = 'reader_inactive'


class RentalNotFound(NotFoundError):
    default_detail = 'Rental not found.'
    default_code = 'rental_not_found'


class DuplicateBook(ConflictError):
    default_detail = 'Book with this title and author already exists.'
    default_code = 'duplicate_book'


class DuplicateReader(ConflictError):
    default_detail = 'Reader with these contact details already exists.'
    default_code = 'duplicate_reader'


class AlreadyReturned(ConflictError):
    default_detail = 'Book has already been returned.'
    default_code = 'already_returned'


class BookUnavailable(InvalidStateError):
    default_detail = 'Book is not available for rental.'
    default_code = 'book_unavailable'


class InventoryExhausted(BookUnavailable):
    default_detail = 'No copies available.'
    default_code = 'inventory_exhausted'


class InventoryOverflow(InvalidStateError):
    default_detail = 'Cannot return more copies than total.'
    default_code = 'inventory_overflow'


class InvalidInventoryState(InvalidStateError):
    default_detail = 'Available copies must be between 0 and total copies.'
    default_code = 'invalid_inventory_state'


class RentalLimitExceeded(InvalidStateError):
    default_detail = 'Reader has reached maximum rental limit.'
    default_code = 'rental_limit_exceeded'


class AllocationRollbackFailed(InvalidStateError):
    """Persisting a rental failed and the reserved copy could not be released.

    ``cause`` is the original persistence error, ``rollback_error`` the failure
    of the compensating release.  The book's counter is left one copy short
    until an operator fixes it.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = 'allocation_rollback_failed'

    def __init__(self, cause, rollback_error):
        self.cause = cause
        self.rollback_error = rollback_error
        super().__init__(
            f"Rental could not be saved ({cause}) and the reserved copy "
            f"could not be released ({rollback_error})."
        )
