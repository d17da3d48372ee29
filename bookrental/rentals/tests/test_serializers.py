from django.test import TestCase

from rentals.exceptions import InvalidInventoryState
from rentals.models import Book
from rentals.serializers import BookSerializer

from .test_models import create_book


class BookSerializerUpdateTests(TestCase):
    def test_lowering_total_below_moved_counter_is_refused(self):
        """A copy released after the book was loaded makes the new total invalid"""
        book = create_book(total_copies=2)
        Book.objects.filter(pk=book.pk).update(available_copies=0)
        stale = Book.objects.get(pk=book.pk)
        Book.objects.filter(pk=book.pk).update(available_copies=2)

        serializer = BookSerializer(stale, data={'total_copies': 1}, partial=True)
        self.assertTrue(serializer.is_valid(), serializer.errors)
        with self.assertRaises(InvalidInventoryState):
            serializer.save()

        book.refresh_from_db()
        self.assertEqual(book.total_copies, 2)
        self.assertEqual(book.available_copies, 2)

    def test_partial_update_keeps_counter(self):
        book = create_book(total_copies=3)
        stale = Book.objects.get(pk=book.pk)
        book.allocate_copy()

        serializer = BookSerializer(stale, data={'genre': 'Classics'}, partial=True)
        self.assertTrue(serializer.is_valid(), serializer.errors)
        serializer.save()

        book.refresh_from_db()
        self.assertEqual(book.genre, 'Classics')
        self.assertEqual(book.available_copies, 2)
