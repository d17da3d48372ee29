import django_filters
from django.utils import timezone

from .models import Book, Reader, ReaderCategory, Rental


class BookFilter(django_filters.FilterSet):
    genre = django_filters.CharFilter(field_name='genre', lookup_expr='icontains')
    author = django_filters.CharFilter(field_name='author', lookup_expr='icontains')
    available = django_filters.BooleanFilter(method='filter_available')

    class Meta:
        model = Book
        fields = ['genre', 'author', 'available']

    def filter_available(self, queryset, name, value):
        if value:
            return queryset.filter(available_copies__gt=0)
        return queryset


class ReaderFilter(django_filters.FilterSet):
    category = django_filters.ChoiceFilter(choices=ReaderCategory.choices)

    class Meta:
        model = Reader
        fields = ['category']


class RentalFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Rental.STATUS_CHOICES, method='filter_status')
    reader = django_filters.NumberFilter(field_name='reader_id')
    book = django_filters.NumberFilter(field_name='book_id')

    class Meta:
        model = Rental
        fields = ['status', 'reader', 'book']

    def filter_status(self, queryset, name, value):
        # Status is derived from the dates, not read from the stored column.
        return queryset.with_status(value, timezone.now())
