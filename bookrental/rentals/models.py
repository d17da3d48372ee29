from decimal import Decimal

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone

from .exceptions import InventoryExhausted, InventoryOverflow, InvalidInventoryState
from .pricing import STATUS_ACTIVE, STATUS_OVERDUE, STATUS_RETURNED

MONEY = dict(max_digits=10, decimal_places=2)


class Book(models.Model):
    title = models.CharField(max_length=200)
    author = models.CharField(max_length=100)
    genre = models.CharField(max_length=50)
    deposit_amount = models.DecimalField(validators=[MinValueValidator(Decimal('0'))], **MONEY)
    rental_price_per_day = models.DecimalField(validators=[MinValueValidator(Decimal('0'))], **MONEY)
    total_copies = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    available_copies = models.PositiveIntegerField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['title', 'author'], name='book_title_author_idx'),
            models.Index(fields=['genre'], name='book_genre_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_copies__lte=models.F('total_copies')),
                name='book_available_lte_total',
            ),
            models.CheckConstraint(
                condition=models.Q(total_copies__gte=1),
                name='book_total_copies_gte_1',
            ),
        ]

    def __str__(self):
        return self.title

    @property
    def is_available(self):
        return self.is_active and self.available_copies > 0

    def check_inventory(self):
        if self.total_copies is None or self.total_copies < 1:
            raise InvalidInventoryState('Total copies must be at least 1.')
        if not 0 <= self.available_copies <= self.total_copies:
            raise InvalidInventoryState()

    def save(self, *args, **kwargs):
        if self._state.adding and self.available_copies is None:
            self.available_copies = self.total_copies
        self.check_inventory()
        super().save(*args, **kwargs)

    def allocate_copy(self):
        """Take one copy, atomically.

        The decrement is a single conditional UPDATE, so two callers racing
        for the last copy cannot both succeed whatever they read beforehand.
        """
        updated = Book.objects.filter(
            pk=self.pk, is_active=True, available_copies__gt=0
        ).update(available_copies=models.F('available_copies') - 1, updated_at=timezone.now())
        self.refresh_from_db(fields=['available_copies', 'is_active', 'updated_at'])
        if not updated:
            raise InventoryExhausted()

    def release_copy(self):
        updated = Book.objects.filter(
            pk=self.pk, available_copies__lt=models.F('total_copies')
        ).update(available_copies=models.F('available_copies') + 1, updated_at=timezone.now())
        self.refresh_from_db(fields=['available_copies', 'updated_at'])
        if not updated:
            raise InventoryOverflow()

    def deactivate(self):
        self.is_active = False
        self.save(update_fields=['is_active', 'updated_at'])


class ReaderCategory(models.TextChoices):
    REGULAR = 'regular', 'Regular'
    STUDENT = 'student', 'Student'
    SENIOR = 'senior', 'Senior'
    EMPLOYEE = 'employee', 'Employee'


CATEGORY_DISCOUNTS = {
    ReaderCategory.REGULAR: 0,
    ReaderCategory.STUDENT: 15,
    ReaderCategory.SENIOR: 20,
    ReaderCategory.EMPLOYEE: 10,
}


def discount_for_category(category):
    return CATEGORY_DISCOUNTS.get(category, 0)


class Reader(models.Model):
    last_name = models.CharField(max_length=50)
    first_name = models.CharField(max_length=50)
    middle_name = models.CharField(max_length=50, blank=True)
    address = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, unique=True)
    email = models.EmailField(unique=True, null=True, blank=True)
    category = models.CharField(max_length=20, choices=ReaderCategory.choices, default=ReaderCategory.REGULAR)
    # Always derived from category in save().
    discount_percentage = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(100)])
    is_active = models.BooleanField(default=True)
    registration_date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['last_name', 'first_name']
        indexes = [
            models.Index(fields=['last_name', 'first_name'], name='reader_name_idx'),
        ]

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        if self.middle_name:
            return f"{self.last_name} {self.first_name} {self.middle_name}"
        return f"{self.last_name} {self.first_name}"

    def save(self, *args, **kwargs):
        self.discount_percentage = discount_for_category(self.category)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'category' in update_fields:
            kwargs['update_fields'] = {*update_fields, 'discount_percentage'}
        super().save(*args, **kwargs)

    def discounted_price(self, base_price):
        factor = Decimal(1) - Decimal(self.discount_percentage) / Decimal(100)
        return max(Decimal('0'), base_price * factor)

    def deactivate(self):
        self.is_active = False
        self.save(update_fields=['is_active', 'updated_at'])


class RentalQuerySet(models.QuerySet):
    def outstanding(self):
        return self.filter(actual_return_date__isnull=True)

    def returned(self):
        return self.filter(actual_return_date__isnull=False)

    def active(self, now=None):
        return self.outstanding().filter(expected_return_date__gte=now or timezone.now())

    def overdue(self, now=None):
        return self.outstanding().filter(expected_return_date__lt=now or timezone.now())

    def with_status(self, status, now=None):
        if status == STATUS_RETURNED:
            return self.returned()
        if status == STATUS_OVERDUE:
            return self.overdue(now)
        if status == STATUS_ACTIVE:
            return self.active(now)
        return self.none()


class Rental(models.Model):
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_OVERDUE, 'Overdue'),
        (STATUS_RETURNED, 'Returned'),
    ]

    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name='rentals')
    reader = models.ForeignKey(Reader, on_delete=models.PROTECT, related_name='rentals')
    issue_date = models.DateTimeField(default=timezone.now)
    expected_return_date = models.DateTimeField()
    actual_return_date = models.DateTimeField(null=True, blank=True)
    # Snapshot of the book's terms at issue time.
    deposit_amount = models.DecimalField(validators=[MinValueValidator(Decimal('0'))], **MONEY)
    rental_price_per_day = models.DecimalField(validators=[MinValueValidator(Decimal('0'))], **MONEY)
    fine_amount = models.DecimalField(default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))], **MONEY)
    discount_amount = models.DecimalField(default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))], **MONEY)
    total_amount = models.DecimalField(default=Decimal('0.00'), **MONEY)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    notes = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RentalQuerySet.as_manager()

    class Meta:
        ordering = ['-issue_date']
        indexes = [
            models.Index(fields=['reader', '-issue_date'], name='rental_reader_issued_idx'),
            models.Index(fields=['book', '-issue_date'], name='rental_book_issued_idx'),
            models.Index(fields=['status'], name='rental_status_idx'),
        ]

    def __str__(self):
        return f"{self.reader} rented {self.book}"
