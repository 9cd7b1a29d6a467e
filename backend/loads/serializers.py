from rest_framework import serializers

from drivers.serializers import DriverBasicSerializer
from .models import Load, LoadStatusEvent, GeofenceEvent, DispatchBlast, BlastResponse


class LoadSerializer(serializers.ModelSerializer):
    """Serializer for Loads"""
    driver = DriverBasicSerializer(read_only=True)

    class Meta:
        model = Load
        fields = ['id', 'reference_number', 'hub', 'status', 'driver', 'dispatcher_id',
                  'pickup_address', 'pickup_latitude', 'pickup_longitude',
                  'delivery_address', 'delivery_latitude', 'delivery_longitude',
                  'vehicle_type', 'sla_deadline', 'assigned_at', 'arrived_pickup_at',
                  'picked_up_at', 'arrived_delivery_at', 'delivered_at', 'completed_at',
                  'cancelled_at', 'created_at', 'updated_at']


class LoadStatusEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = LoadStatusEvent
        fields = ['id', 'previous_status', 'new_status', 'changed_by', 'reason',
                  'latitude', 'longitude', 'created_at']


class GeofenceEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = GeofenceEvent
        fields = ['id', 'driver_id', 'event_type', 'latitude', 'longitude', 'accuracy',
                  'distance_meters', 'triggered_at']


class BlastResponseSerializer(serializers.ModelSerializer):
    driver = DriverBasicSerializer(read_only=True)

    class Meta:
        model = BlastResponse
        fields = ['id', 'driver', 'status', 'distance_miles', 'response_time_ms',
                  'decline_reason', 'notified_at', 'viewed_at', 'responded_at']


class DispatchBlastSerializer(serializers.ModelSerializer):
    """Dispatcher view of a blast, including every driver's response"""
    responses = BlastResponseSerializer(many=True, read_only=True)
    accepted_by = DriverBasicSerializer(read_only=True)

    class Meta:
        model = DispatchBlast
        fields = ['id', 'load_id', 'status', 'hub', 'hub_agnostic', 'message', 'priority',
                  'radius_miles', 'prior_load_status', 'expires_at', 'blast_sent_at',
                  'closed_at', 'accepted_by', 'accepted_at', 'cancellation_reason',
                  'drivers_notified', 'drivers_viewed', 'drivers_declined',
                  'created_at', 'responses']


class DriverOfferSerializer(serializers.ModelSerializer):
    """
    Driver view of a blast: the load plus the driver's own standing.
    Expects ``responses_by_blast`` ({blast_id: BlastResponse}) in context.
    """
    load = LoadSerializer(read_only=True)
    distance_miles = serializers.SerializerMethodField()
    response_status = serializers.SerializerMethodField()

    class Meta:
        model = DispatchBlast
        fields = ['id', 'load', 'message', 'priority', 'radius_miles', 'expires_at',
                  'blast_sent_at', 'distance_miles', 'response_status']

    def _response(self, blast):
        return self.context.get('responses_by_blast', {}).get(blast.id)

    def get_distance_miles(self, blast):
        response = self._response(blast)
        return response.distance_miles if response else None

    def get_response_status(self, blast):
        response = self._response(blast)
        return response.status if response else None


# ==================== Request Payloads ====================

class CreateBlastSerializer(serializers.Serializer):
    """Serializer for blasting a load"""
    radius_miles = serializers.FloatField(required=False, allow_null=True)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)
    expires_in_minutes = serializers.IntegerField(required=False, min_value=1)
    message = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.ChoiceField(
        choices=[choice for choice, _ in DispatchBlast.PRIORITY_CHOICES],
        default='normal',
    )
    hub_agnostic = serializers.BooleanField(default=False)


class BlastCancelSerializer(serializers.Serializer):
    """Serializer for blast cancellation"""
    reason = serializers.CharField(required=False, allow_blank=True)


class BlastRespondSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['view', 'decline', 'accept'])
    reason = serializers.CharField(required=False, allow_blank=True)


class LoadStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[choice for choice, _ in Load.STATUS_CHOICES])
    reason = serializers.CharField(required=False, allow_blank=True)
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    driver_id = serializers.IntegerField(required=False, allow_null=True)
    force = serializers.BooleanField(required=False, default=False)


class SuggestionQuerySerializer(serializers.Serializer):
    pickup_lat = serializers.FloatField(required=False)
    pickup_lng = serializers.FloatField(required=False)
    cutoff_time = serializers.DateTimeField(required=False)
