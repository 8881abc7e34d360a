from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import LoginView, MeView
from bookings.api import BookingAccessPaymentView, BookingAccessView, BookingViewSet
from payments.api import PaymentViewSet
from properties.api import PropertyViewSet

router = DefaultRouter()
router.register(r"properties", PropertyViewSet, basename="property")
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"payments", PaymentViewSet, basename="payment")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path(
        "api/booking-access/<str:token>/",
        BookingAccessView.as_view(),
        name="booking-access",
    ),
    path(
        "api/booking-access/<str:token>/payments/",
        BookingAccessPaymentView.as_view(),
        name="booking-access-payments",
    ),
    path("api/", include(router.urls)),
]
