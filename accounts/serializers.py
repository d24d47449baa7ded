from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for user details.
    Used for retrieving and updating the signed-in user's profile.
    """
    full_name = serializers.CharField(source='get_full_name', read_only=True)
    role_display = serializers.CharField(source='get_role_display', read_only=True)

    class Meta:
        model = User
        fields = (
            'id', 'username', 'email', 'phone', 'first_name', 'last_name',
            'full_name', 'role', 'role_display',
            'street', 'city', 'county', 'postal_code',
            'date_joined',
        )
        read_only_fields = ('id', 'username', 'full_name', 'role', 'role_display', 'date_joined')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    JWT token serializer that also returns the user's basic details.
    """
    def validate(self, attrs):
        data = super().validate(attrs)

        data['user'] = {
            'id': str(self.user.id),
            'username': self.user.username,
            'email': self.user.email,
            'phone': str(self.user.phone) if self.user.phone else '',
            'role': self.user.role,
            'full_name': self.user.get_full_name(),
        }

        return data
