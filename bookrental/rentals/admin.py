from django.contrib import admin

from .models import Book, Reader, Rental


@admin.register(Book)
class BookAdmin(admin.ModelAdmin):
    list_display = ['title', 'author', 'genre', 'available_copies', 'total_copies', 'is_active']
    list_filter = ['genre', 'is_active']
    search_fields = ['title', 'author']


@admin.register(Reader)
class ReaderAdmin(admin.ModelAdmin):
    list_display = ['last_name', 'first_name', 'phone', 'category', 'discount_percentage', 'is_active']
    list_filter = ['category', 'is_active']
    search_fields = ['last_name', 'first_name', 'phone', 'email']
    readonly_fields = ['discount_percentage']


@admin.register(Rental)
class RentalAdmin(admin.ModelAdmin):
    list_display = ['book', 'reader', 'issue_date', 'expected_return_date', 'actual_return_date', 'status', 'total_amount']
    list_filter = ['status']
    readonly_fields = [
        'deposit_amount', 'rental_price_per_day', 'discount_amount', 'total_amount', 'status',
    ]
