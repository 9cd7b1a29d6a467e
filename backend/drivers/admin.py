from django.contrib import admin
from drivers.models import Driver, DriverLocation


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    """Admin panel for managing the driver roster"""

    list_display = [
        "user",
        "hub",
        "vehicle_number",
        "vehicle_type",
        "status",
        "shift_started_at",
        "last_location_update",
    ]

    list_filter = [
        "hub",
        "status",
        "vehicle_type",
    ]

    search_fields = [
        "user__username",
        "vehicle_number",
    ]

    readonly_fields = [
        "current_latitude",
        "current_longitude",
        "current_accuracy",
        "last_location_update",
    ]

    ordering = ("user__username",)


@admin.register(DriverLocation)
class DriverLocationAdmin(admin.ModelAdmin):
    list_display = ["driver", "latitude", "longitude", "accuracy", "active_load", "recorded_at"]
    list_filter = ["recorded_at"]
    search_fields = ["driver__user__username"]
    raw_id_fields = ["driver", "active_load"]
