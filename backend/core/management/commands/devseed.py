from datetime import date, timedelta
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from bookings.models import Booking
from bookings.services import workflow
from properties.models import Property, SeasonalRate
from properties.pricing import GuestCounts


SEED_PASSWORD = "Staycore123!"
SUPERUSER_EMAIL = "admin@villa.test"
SUPERUSER_PASSWORD = "AdminStaycore123!"


class Command(BaseCommand):
    help = "Populate the local development database with sample data."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        today = timezone.localdate()

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Creating staff users"))
            owner = self._ensure_user(
                email="owner@villa.test",
                first_name="Olivia",
                last_name="Owner",
                role=User.OWNER,
            )
            desk = self._ensure_user(
                email="desk@villa.test",
                first_name="Dewi",
                last_name="Desk",
                role=User.FRONT_DESK,
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating properties"))
            villa = self._ensure_property(
                slug="villa-sawah",
                name="Villa Sawah",
                address="Jl. Raya Ubud, Bali",
                bedrooms=2,
                capacity=4,
                capacity_max=6,
                base_rate=1_500_000,
                weekend_premium_percent=Decimal("20"),
                cleaning_fee=150_000,
                extra_bed_rate=200_000,
                min_stay_weekend=2,
            )
            cabin = self._ensure_property(
                slug="pondok-kopi",
                name="Pondok Kopi",
                address="Kintamani, Bali",
                bedrooms=1,
                capacity=2,
                capacity_max=3,
                base_rate=650_000,
                weekend_premium_percent=Decimal("10"),
                cleaning_fee=75_000,
                extra_bed_rate=100_000,
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating seasonal rates"))
            year_end = date(today.year, 12, 20)
            SeasonalRate.objects.update_or_create(
                property=villa,
                name="Year-end holidays",
                defaults={
                    "start_date": year_end,
                    "end_date": date(today.year + 1, 1, 3),
                    "rate_type": SeasonalRate.PERCENTAGE,
                    "rate_value": Decimal("35"),
                    "min_stay_nights": 3,
                    "priority": 10,
                },
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating sample bookings"))
            if not Booking.objects.filter(property=villa).exists():
                pending = self._create_booking(
                    villa,
                    check_in=today + timedelta(days=14),
                    nights=3,
                    guests=GuestCounts(male=2, female=2, children=1),
                    name="Greta Guest",
                    email="greta@example.test",
                    dp_percentage=50,
                )
                confirmed = self._create_booking(
                    villa,
                    check_in=today + timedelta(days=30),
                    nights=3,
                    guests=GuestCounts(male=1, female=1),
                    name="Frank Friend",
                    email="frank@example.test",
                    dp_percentage=30,
                )
                workflow.verify_booking(confirmed.pk, desk, "Seeded confirmation")
                workflow.submit_payment(
                    confirmed.pk,
                    confirmed.dp_amount,
                    "bank_transfer",
                    "seed-transfer-receipt.jpg",
                    actor=desk,
                )
                self.stdout.write(self.style.NOTICE(f"Pending booking {pending.booking_number}"))
                self.stdout.write(self.style.NOTICE(f"Confirmed booking {confirmed.booking_number}"))
            if not Booking.objects.filter(property=cabin).exists():
                self._create_booking(
                    cabin,
                    check_in=today + timedelta(days=7),
                    nights=1,
                    guests=GuestCounts(female=2),
                    name="Putri Pratama",
                    email="putri@example.test",
                    dp_percentage=100,
                )

            superuser = self._ensure_superuser()

        self.stdout.write(self.style.SUCCESS("Development data ready."))
        self.stdout.write(f"Staff password: {SEED_PASSWORD}")
        for user in (owner, desk):
            self.stdout.write(f"  {user.email}")
        self.stdout.write(f"Superuser: {superuser.email} / {SUPERUSER_PASSWORD}")

    def _ensure_user(self, email: str, first_name: str, last_name: str, role: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "display_name": f"{first_name} {last_name}",
                "role": role,
            },
        )
        if created:
            user.set_password(SEED_PASSWORD)
            user.save()
        elif user.role != role:
            user.role = role
            user.save(update_fields=["role"])
        return user

    def _ensure_property(self, slug: str, name: str, **fields) -> Property:
        property_obj, created = Property.objects.update_or_create(slug=slug, defaults={"name": name, **fields})
        if created:
            self.stdout.write(self.style.NOTICE(f"Added property {name}"))
        return property_obj

    def _create_booking(
        self,
        property_obj: Property,
        *,
        check_in: date,
        nights: int,
        guests: GuestCounts,
        name: str,
        email: str,
        dp_percentage: int,
    ) -> Booking:
        return workflow.create_booking(
            property_id=property_obj.pk,
            check_in=check_in,
            check_out=check_in + timedelta(days=nights),
            guests=guests,
            dp_percentage=dp_percentage,
            contact=workflow.GuestContact(name=name, email=email),
            guest_details=[workflow.GuestDetail(full_name=name, gender="female", is_primary=True)],
            booking_source=Booking.SOURCE_PHONE,
        )

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "first_name": "Admin",
                "last_name": "User",
                "display_name": "Admin User",
                "role": User.OWNER,
                "is_staff": True,
                "is_superuser": True,
            },
        )
        if created:
            user.set_password(SUPERUSER_PASSWORD)
            user.save()
        elif not (user.is_staff and user.is_superuser):
            user.is_staff = True
            user.is_superuser = True
            user.save(update_fields=["is_staff", "is_superuser"])
        return user
