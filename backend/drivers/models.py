from django.db import models
from django.utils import timezone
from django.conf import settings

User = settings.AUTH_USER_MODEL


class Driver(models.Model):
    """Roster entry for a driver: hub, duty status, vehicle and live position"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('on_break', 'On Break'),
        ('off_duty', 'Off Duty'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='driver')

    hub = models.CharField(max_length=50, default='phoenix')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='inactive')

    vehicle_number = models.CharField(max_length=20, unique=True)
    vehicle_type = models.CharField(max_length=30, blank=True)

    # Start of the current shift; earlier shifts are offered loads first on ties
    shift_started_at = models.DateTimeField(null=True, blank=True)

    # Latest GPS fix, copied from the newest DriverLocation row
    current_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    current_accuracy = models.FloatField(null=True, blank=True)
    last_location_update = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'drivers'
        ordering = ['user__username']

    def __str__(self):
        return f"{self.user.username} - {self.vehicle_number}"

    @property
    def has_location(self) -> bool:
        return self.current_latitude is not None and self.current_longitude is not None

    def location_age_seconds(self, now=None):
        if self.last_location_update is None:
            return None
        now = now or timezone.now()
        return (now - self.last_location_update).total_seconds()


class DriverLocation(models.Model):
    """GPS breadcrumb reported by a driver's device"""

    driver = models.ForeignKey(Driver, on_delete=models.CASCADE, related_name='locations')

    latitude = models.DecimalField(max_digits=9, decimal_places=6)
    longitude = models.DecimalField(max_digits=9, decimal_places=6)
    accuracy = models.FloatField(null=True, blank=True)  # meters
    speed = models.FloatField(null=True, blank=True)  # m/s
    heading = models.FloatField(null=True, blank=True)  # degrees from north

    active_load = models.ForeignKey(
        'loads.Load',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='driver_locations',
    )

    recorded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'driver_locations'
        ordering = ['-recorded_at']
        indexes = [
            models.Index(fields=['driver', '-recorded_at'], name='driver_location_latest'),
            models.Index(fields=['recorded_at'], name='driver_location_recorded'),
        ]

    def __str__(self):
        return f"{self.driver_id} @ ({self.latitude}, {self.longitude}) {self.recorded_at:%H:%M:%S}"
