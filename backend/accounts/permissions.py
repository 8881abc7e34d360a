from rest_framework.permissions import BasePermission


class IsBookingStaff(BasePermission):
    """
    Allow access only to front-office staff (owner, manager, front desk)
    or Django staff accounts. Superusers automatically pass.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser:
            return True
        return bool(getattr(user, "is_booking_staff", False))
