from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.db import IntegrityError, transaction
from django.utils import timezone

from .exceptions import InvalidInventoryState
from .models import Book, Reader, Rental
from .pricing import STATUS_OVERDUE, derive_status, rental_days
from . import services

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'password', 'is_staff', 'date_joined']
        read_only_fields = ['is_staff', 'date_joined']
        extra_kwargs = {'password': {'write_only': True}}

    def create(self, validated_data):
        user = User.objects.create_user(**validated_data)
        return user


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)

    def validate_current_password(self, value):
        if not self.instance.check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate_new_password(self, value):
        validate_password(value, self.instance)
        return value

    def update(self, instance, validated_data):
        instance.set_password(validated_data['new_password'])
        instance.save(update_fields=['password'])
        return instance


class BookSerializer(serializers.ModelSerializer):
    is_available = serializers.BooleanField(read_only=True)

    class Meta:
        model = Book
        fields = [
            'id', 'title', 'author', 'genre', 'deposit_amount', 'rental_price_per_day',
            'total_copies', 'available_copies', 'is_available', 'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {'available_copies': {'required': False}}

    def validate(self, data):
        """
        Ensure available_copies stays within 0..total_copies.
        New books always start with every copy on the shelf.
        """
        if self.instance is None:
            data.pop('available_copies', None)
            data.pop('is_active', None)
            return data
        total_copies = data.get('total_copies', self.instance.total_copies)
        available_copies = data.get('available_copies', self.instance.available_copies)
        if available_copies > total_copies:
            raise serializers.ValidationError("Available copies cannot exceed total copies.")
        return data

    def create(self, validated_data):
        services.ensure_book_unique(validated_data['title'], validated_data['author'])
        validated_data['available_copies'] = validated_data.get('total_copies', 1)
        return super().create(validated_data)

    def update(self, instance, validated_data):
        title = validated_data.get('title', instance.title)
        author = validated_data.get('author', instance.author)
        if 'title' in validated_data or 'author' in validated_data:
            services.ensure_book_unique(title, author, exclude_pk=instance.pk)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        # Only write edited columns so concurrent copy counter updates survive.
        try:
            with transaction.atomic():
                instance.save(update_fields=[*validated_data, 'updated_at'])
        except IntegrityError:
            # The stored counter moved since this instance was loaded.
            instance.refresh_from_db(fields=['total_copies', 'available_copies'])
            raise InvalidInventoryState(
                f"Total copies cannot be lower than available copies ({instance.available_copies})."
            )
        return instance


class ReaderSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Reader
        fields = [
            'id', 'last_name', 'first_name', 'middle_name', 'full_name', 'address', 'phone', 'email',
            'category', 'discount_percentage', 'is_active', 'registration_date', 'created_at', 'updated_at',
        ]
        read_only_fields = ['discount_percentage', 'registration_date', 'created_at', 'updated_at']
        extra_kwargs = {
            # Uniqueness is reported as a conflict by the service layer.
            'phone': {'validators': []},
            'email': {'validators': []},
        }

    def validate_email(self, value):
        return value.lower() if value else None

    def validate(self, data):
        exclude_pk = self.instance.pk if self.instance else None
        phone = data.get('phone')
        email = data.get('email')
        if self.instance is not None:
            phone = phone if phone != self.instance.phone else None
            email = email if email != self.instance.email else None
        services.ensure_reader_contacts_unique(phone=phone, email=email, exclude_pk=exclude_pk)
        return data


class BookSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Book
        fields = ['id', 'title', 'author', 'genre']


class ReaderSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Reader
        fields = ['id', 'first_name', 'last_name', 'phone']


class RentalSerializer(serializers.ModelSerializer):
    book = BookSummarySerializer(read_only=True)
    reader = ReaderSummarySerializer(read_only=True)
    status = serializers.SerializerMethodField()
    rental_days = serializers.SerializerMethodField()
    is_overdue = serializers.SerializerMethodField()

    class Meta:
        model = Rental
        fields = [
            'id', 'book', 'reader', 'issue_date', 'expected_return_date', 'actual_return_date',
            'deposit_amount', 'rental_price_per_day', 'fine_amount', 'discount_amount', 'total_amount',
            'status', 'rental_days', 'is_overdue', 'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'issue_date', 'expected_return_date', 'actual_return_date', 'deposit_amount',
            'rental_price_per_day', 'fine_amount', 'discount_amount', 'total_amount', 'notes',
        ]

    def _now(self):
        return self.context.get('now') or timezone.now()

    def get_status(self, obj) -> str:
        return derive_status(obj, self._now())

    def get_rental_days(self, obj) -> int:
        return rental_days(obj.issue_date, obj.actual_return_date or self._now())

    def get_is_overdue(self, obj) -> bool:
        return derive_status(obj, self._now()) == STATUS_OVERDUE


class RentalCreateSerializer(serializers.Serializer):
    book_id = serializers.IntegerField()
    reader_id = serializers.IntegerField()
    expected_return_date = serializers.DateTimeField()
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)

    def validate_expected_return_date(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError("Expected return date must be in the future.")
        return value

    def create(self, validated_data):
        return services.create_rental(
            book_id=validated_data['book_id'],
            reader_id=validated_data['reader_id'],
            expected_return_date=validated_data['expected_return_date'],
            notes=validated_data.get('notes'),
        )

    def to_representation(self, instance):
        return RentalSerializer(instance, context=self.context).data


class ReturnSerializer(serializers.Serializer):
    fine_amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, default=0)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)


class RentalStatsSerializer(serializers.Serializer):
    active_rentals = serializers.IntegerField()
    overdue_rentals = serializers.IntegerField()
    total_rentals = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=12, decimal_places=2)
