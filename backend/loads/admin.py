"""Tells what to show in the Django admin interface for loads app"""

from django.contrib import admin
from .models import Load, LoadStatusEvent, GeofenceEvent, DispatchBlast, BlastResponse


class LoadStatusEventInline(admin.TabularInline):
    model = LoadStatusEvent
    extra = 0
    can_delete = False
    readonly_fields = ['previous_status', 'new_status', 'changed_by', 'reason', 'latitude', 'longitude', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Load)
class LoadAdmin(admin.ModelAdmin):
    """Load admin. Status is read-only here: it only changes through the status machine."""
    list_display = ['id', 'reference_number', 'hub', 'status', 'driver', 'sla_deadline', 'created_at']
    list_filter = ['status', 'hub', 'created_at']
    search_fields = ['reference_number', 'pickup_address', 'delivery_address', 'driver__user__username']
    readonly_fields = ['status', 'driver', 'assigned_at', 'arrived_pickup_at', 'picked_up_at',
                       'arrived_delivery_at', 'delivered_at', 'completed_at', 'cancelled_at']
    date_hierarchy = 'created_at'
    inlines = [LoadStatusEventInline]


class BlastResponseInline(admin.TabularInline):
    model = BlastResponse
    extra = 0
    can_delete = False
    readonly_fields = ['driver', 'status', 'distance_miles', 'response_time_ms', 'decline_reason',
                       'notified_at', 'viewed_at', 'responded_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(DispatchBlast)
class DispatchBlastAdmin(admin.ModelAdmin):
    list_display = ('id', 'load', 'status', 'priority', 'radius_miles', 'drivers_notified',
                    'drivers_declined', 'accepted_by', 'expires_at')
    list_filter = ('status', 'priority', 'hub')
    search_fields = ('load__reference_number', 'accepted_by__user__username')
    readonly_fields = ('status', 'accepted_by', 'accepted_at', 'closed_at', 'drivers_notified',
                       'drivers_viewed', 'drivers_declined')
    inlines = [BlastResponseInline]


@admin.register(GeofenceEvent)
class GeofenceEventAdmin(admin.ModelAdmin):
    list_display = ("load", "driver", "event_type", "distance_meters", "accuracy", "triggered_at")
    list_filter = ("event_type",)
    search_fields = ("load__reference_number", "driver__user__username")
