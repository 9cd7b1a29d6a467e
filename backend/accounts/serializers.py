from rest_framework import serializers
from django.contrib.auth import authenticate

from .models import User
from drivers.models import Driver


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "role",
            "phone_number",
        ]
        read_only_fields = ["id"]


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(username=data["username"], password=data["password"])
        if not user:
            raise serializers.ValidationError("Invalid username or password")
        return user


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)
    vehicle_number = serializers.CharField(required=False)
    vehicle_type = serializers.CharField(required=False, allow_blank=True)
    hub = serializers.CharField(required=False)

    class Meta:
        model = User
        fields = [
            'username', 'password', 'email', 'first_name', 'last_name',
            'role', 'phone_number', 'vehicle_number', 'vehicle_type', 'hub',
        ]

    def validate_email(self, value):
        if value and User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value

    def validate(self, data):
        # Drivers join the roster, so the vehicle is mandatory
        if data['role'] == 'driver' and not data.get('vehicle_number'):
            raise serializers.ValidationError({
                'vehicle_number': 'Vehicle number is required for drivers'
            })
        return data

    def create(self, validated_data):
        vehicle_number = validated_data.pop('vehicle_number', None)
        vehicle_type = validated_data.pop('vehicle_type', '')
        hub = validated_data.pop('hub', None)
        password = validated_data.pop('password')

        user = User.objects.create_user(password=password, **validated_data)

        if user.role == 'driver':
            driver_fields = {
                'vehicle_number': vehicle_number,
                'vehicle_type': vehicle_type or '',
            }
            if hub:
                driver_fields['hub'] = hub
            Driver.objects.create(user=user, **driver_fields)

        return user
