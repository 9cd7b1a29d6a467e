from rest_framework import serializers
from drivers.models import Driver
from accounts.serializers import UserSerializer


class DriverProfileSerializer(serializers.ModelSerializer):
    """
    Full driver roster entry
    """
    user = UserSerializer(read_only=True)

    class Meta:
        model = Driver
        fields = [
            "id",
            "user",
            "hub",
            "status",
            "vehicle_number",
            "vehicle_type",
            "shift_started_at",
            "current_latitude",
            "current_longitude",
            "current_accuracy",
            "last_location_update",
        ]
        read_only_fields = [
            "id",
            "status",
            "shift_started_at",
            "current_latitude",
            "current_longitude",
            "current_accuracy",
            "last_location_update",
        ]


class DriverBasicSerializer(serializers.ModelSerializer):
    """
    Lite version of driver info for load details and suggestions.
    """
    username = serializers.CharField(source="user.username", read_only=True)
    phone_number = serializers.CharField(source="user.phone_number", read_only=True)

    class Meta:
        model = Driver
        fields = [
            "id",
            "username",
            "phone_number",
            "hub",
            "status",
            "vehicle_number",
            "vehicle_type",
            "current_latitude",
            "current_longitude",
            "last_location_update",
        ]


class DriverStatusSerializer(serializers.Serializer):
    """
    Serializer for updating driver duty status.
    """
    status = serializers.ChoiceField(choices=[choice for choice, _ in Driver.STATUS_CHOICES])


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for a driver GPS ping.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180)
    accuracy = serializers.FloatField(required=False, allow_null=True, min_value=0)
    speed = serializers.FloatField(required=False, allow_null=True, min_value=0)
    heading = serializers.FloatField(required=False, allow_null=True, min_value=0, max_value=360)
    active_load_id = serializers.IntegerField(required=False, allow_null=True)
    recorded_at = serializers.DateTimeField(required=False, allow_null=True)
