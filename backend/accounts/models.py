from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    FRONT_DESK = "FRONT_DESK"
    GUEST = "GUEST"
    ROLES = [
        (OWNER, "Owner"),
        (MANAGER, "Manager"),
        (FRONT_DESK, "Front Desk"),
        (GUEST, "Guest"),
    ]
    STAFF_ROLES = (OWNER, MANAGER, FRONT_DESK)

    display_name = models.CharField(max_length=120, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    role = models.CharField(max_length=20, choices=ROLES, default=GUEST)

    @property
    def is_booking_staff(self) -> bool:
        return self.is_staff or self.role in self.STAFF_ROLES

    def __str__(self):
        return self.display_name or self.email or self.username
