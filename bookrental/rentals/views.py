from rest_framework import generics, filters, status
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend
from drf_yasg.utils import swagger_auto_schema
from django.contrib.auth import get_user_model
from django.http import Http404
from django.utils import timezone

from .exceptions import BookNotFound, ReaderNotFound, RentalNotFound
from .filters import BookFilter, ReaderFilter, RentalFilter
from .models import Book, Reader, Rental
from .pricing import STATUS_ACTIVE, STATUS_OVERDUE, STATUS_RETURNED
from .permissions import IsAdminOrReadOnly, IsLibrarian
from .serializers import (
    UserSerializer, ChangePasswordSerializer, BookSerializer, ReaderSerializer, RentalSerializer,
    RentalCreateSerializer, ReturnSerializer, RentalStatsSerializer,
)
from . import services

User = get_user_model()


class RegisterView(generics.CreateAPIView):
    queryset = User.objects.all()
    serializer_class = UserSerializer
    permission_classes = [AllowAny]


class MeView(generics.RetrieveAPIView):
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user


class ChangePasswordView(generics.UpdateAPIView):
    serializer_class = ChangePasswordSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ['put', 'options']

    def get_object(self):
        return self.request.user

    def update(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_object(), data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({'detail': 'Password updated successfully.'}, status=status.HTTP_200_OK)


class NotFoundMixin:
    not_found_exception = None

    def get_object(self):
        try:
            return super().get_object()
        except Http404:
            raise self.not_found_exception()


class MergeUpdateMixin:
    """PUT behaves like PATCH: only the supplied fields change."""

    def update(self, request, *args, **kwargs):
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)


class BookListView(generics.ListCreateAPIView):
    queryset = Book.objects.filter(is_active=True)
    serializer_class = BookSerializer
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_class = BookFilter
    search_fields = ['title', 'author']


class AvailableBookListView(generics.ListAPIView):
    queryset = Book.objects.filter(is_active=True, available_copies__gt=0)
    serializer_class = BookSerializer
    permission_classes = [AllowAny]


class BookDetailView(NotFoundMixin, MergeUpdateMixin, generics.RetrieveUpdateDestroyAPIView):
    not_found_exception = BookNotFound
    queryset = Book.objects.filter(is_active=True)
    serializer_class = BookSerializer
    permission_classes = [IsAdminOrReadOnly]

    def perform_destroy(self, instance):
        instance.deactivate()


class ReaderListView(generics.ListCreateAPIView):
    queryset = Reader.objects.filter(is_active=True)
    serializer_class = ReaderSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_class = ReaderFilter
    search_fields = ['first_name', 'last_name', 'middle_name', 'phone', 'email']


class ReaderDetailView(NotFoundMixin, MergeUpdateMixin, generics.RetrieveUpdateDestroyAPIView):
    not_found_exception = ReaderNotFound
    queryset = Reader.objects.filter(is_active=True)
    serializer_class = ReaderSerializer
    permission_classes = [IsAuthenticated]

    def perform_destroy(self, instance):
        instance.deactivate()


class RentalListView(generics.ListCreateAPIView):
    queryset = Rental.objects.select_related('book', 'reader')
    permission_classes = [IsLibrarian]
    filter_backends = [DjangoFilterBackend]
    filterset_class = RentalFilter

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return RentalCreateSerializer
        return RentalSerializer


class RentalDetailView(NotFoundMixin, generics.RetrieveAPIView):
    not_found_exception = RentalNotFound
    queryset = Rental.objects.select_related('book', 'reader')
    serializer_class = RentalSerializer
    permission_classes = [IsLibrarian]


class RentalReturnView(NotFoundMixin, generics.GenericAPIView):
    not_found_exception = RentalNotFound
    queryset = Rental.objects.all()
    serializer_class = ReturnSerializer
    permission_classes = [IsLibrarian]

    @swagger_auto_schema(request_body=ReturnSerializer, responses={200: RentalSerializer})
    def post(self, request, *args, **kwargs):
        rental = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.return_rental(
            rental,
            fine_amount=serializer.validated_data['fine_amount'],
            notes=serializer.validated_data.get('notes'),
        )
        data = dict(RentalSerializer(result.rental, context=self.get_serializer_context()).data)
        if result.warnings:
            data['warnings'] = result.warnings
        return Response(data, status=status.HTTP_200_OK)

    @swagger_auto_schema(request_body=ReturnSerializer, responses={200: RentalSerializer})
    def put(self, request, *args, **kwargs):
        return self.post(request, *args, **kwargs)


class ActiveRentalListView(generics.ListAPIView):
    serializer_class = RentalSerializer
    permission_classes = [IsLibrarian]

    def get_queryset(self):
        return Rental.objects.active(timezone.now()).select_related('book', 'reader')


class OverdueRentalListView(generics.ListAPIView):
    serializer_class = RentalSerializer
    permission_classes = [IsLibrarian]

    def get_queryset(self):
        return Rental.objects.overdue(timezone.now()).select_related('book', 'reader')


class ReaderRentalListView(generics.ListAPIView):
    serializer_class = RentalSerializer
    permission_classes = [IsLibrarian]

    def get_queryset(self):
        rentals = Rental.objects.filter(reader_id=self.kwargs['reader_id']).select_related('book', 'reader')
        requested = self.request.query_params.get('status', 'all')
        if requested in (STATUS_ACTIVE, STATUS_OVERDUE, STATUS_RETURNED):
            rentals = rentals.with_status(requested, timezone.now())
        return rentals


class RentalStatsView(APIView):
    permission_classes = [IsLibrarian]

    @swagger_auto_schema(responses={200: RentalStatsSerializer})
    def get(self, request):
        stats = services.rental_statistics()
        return Response(RentalStatsSerializer(stats).data)
