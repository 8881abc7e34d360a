from django.contrib.auth import get_user_model
from rest_framework import exceptions, serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Expose the public fields for the custom user model."""

    is_booking_staff = serializers.BooleanField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "display_name",
            "phone",
            "role",
            "is_booking_staff",
        ]
        read_only_fields = ["id", "username", "role"]


class StaffTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Email + password login for booking staff; the token carries the staff role."""

    username_field = User.USERNAME_FIELD

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field)
        self.fields["email"] = serializers.EmailField()

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["role"] = user.role
        return token

    def validate(self, attrs):
        attrs[self.username_field] = attrs.pop("email").lower()
        data = super().validate(attrs)
        if not self.user.is_booking_staff:
            raise exceptions.AuthenticationFailed("Only booking staff can sign in.", code="not_booking_staff")
        data["user"] = UserSerializer(self.user).data
        return data


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Update the contact fields staff members keep on their own profile."""

    class Meta:
        model = User
        fields = ["first_name", "last_name", "display_name", "phone"]

    def update(self, instance, validated_data):
        user = super().update(instance, validated_data)
        if not user.display_name:
            user.display_name = (
                f"{user.first_name} {user.last_name}".strip() or user.email
            )
            user.save(update_fields=["display_name"])
        return user
