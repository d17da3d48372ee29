from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from .views import (
    RegisterView, MeView, ChangePasswordView, BookListView, AvailableBookListView, BookDetailView,
    ReaderListView, ReaderDetailView, RentalListView, RentalDetailView, RentalReturnView,
    ActiveRentalListView, OverdueRentalListView, ReaderRentalListView, RentalStatsView,
)

urlpatterns = [
    path('register/', RegisterView.as_view(), name='register'),
    path('login/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('me/', MeView.as_view(), name='me'),
    path('password/', ChangePasswordView.as_view(), name='change_password'),
    path('books/', BookListView.as_view(), name='book_list'),
    path('books/available/', AvailableBookListView.as_view(), name='book_available'),
    path('books/<int:pk>/', BookDetailView.as_view(), name='book_detail'),
    path('readers/', ReaderListView.as_view(), name='reader_list'),
    path('readers/<int:pk>/', ReaderDetailView.as_view(), name='reader_detail'),
    path('rentals/', RentalListView.as_view(), name='rental_list'),
    path('rentals/active/', ActiveRentalListView.as_view(), name='rental_active'),
    path('rentals/overdue/', OverdueRentalListView.as_view(), name='rental_overdue'),
    path('rentals/stats/', RentalStatsView.as_view(), name='rental_stats'),
    path('rentals/reader/<int:reader_id>/', ReaderRentalListView.as_view(), name='reader_rentals'),
    path('rentals/<int:pk>/', RentalDetailView.as_view(), name='rental_detail'),
    path('rentals/<int:pk>/return/', RentalReturnView.as_view(), name='rental_return'),
]
