from django.db import models
from django.db.models import Q
from django.conf import settings
from django.utils import timezone


class Load(models.Model):
    """A shipment job moving from a pickup point to a delivery point"""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('assigned', 'Assigned'),
        ('blasted', 'Blasted'),
        ('in_progress', 'In Progress'),
        ('arrived_pickup', 'Arrived at Pickup'),
        ('in_transit', 'In Transit'),
        ('arrived_delivery', 'Arrived at Delivery'),
        ('delivered', 'Delivered'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('failed', 'Failed'),
    ]

    reference_number = models.CharField(max_length=40, blank=True)
    hub = models.CharField(max_length=50, default='phoenix')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    driver = models.ForeignKey(
        'drivers.Driver',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='loads',
    )
    dispatcher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='dispatched_loads',
    )

    # Pickup location
    pickup_address = models.TextField(blank=True)
    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    # Delivery location
    delivery_address = models.TextField(blank=True)
    delivery_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    delivery_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    # Blank means any vehicle can haul it
    vehicle_type = models.CharField(max_length=30, blank=True)

    sla_deadline = models.DateTimeField(null=True, blank=True)

    # Lifecycle timestamps
    assigned_at = models.DateTimeField(null=True, blank=True)
    arrived_pickup_at = models.DateTimeField(null=True, blank=True)
    picked_up_at = models.DateTimeField(null=True, blank=True)
    arrived_delivery_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'loads'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['driver', 'status'], name='load_driver_status'),
            models.Index(fields=['status', 'sla_deadline'], name='load_status_sla'),
        ]

    def __str__(self):
        return f"Load #{self.id} {self.reference_number or ''} - {self.status}".replace('  ', ' ')

    @property
    def has_pickup_coordinates(self) -> bool:
        return self.pickup_latitude is not None and self.pickup_longitude is not None

    @property
    def has_delivery_coordinates(self) -> bool:
        return self.delivery_latitude is not None and self.delivery_longitude is not None


class LoadStatusEvent(models.Model):
    """Append-only audit trail of every Load status change"""

    load = models.ForeignKey(Load, on_delete=models.CASCADE, related_name='status_events')
    previous_status = models.CharField(max_length=20, null=True, blank=True)
    new_status = models.CharField(max_length=20)
    changed_by = models.CharField(max_length=64)
    reason = models.TextField(blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'load_status_events'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['load', '-created_at'], name='load_event_latest'),
        ]

    def __str__(self):
        return f"Load {self.load_id}: {self.previous_status} -> {self.new_status} by {self.changed_by}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Load status events are append-only")
        super().save(*args, **kwargs)


class GeofenceEvent(models.Model):
    """Arrival or departure detected from a driver's GPS stream"""

    EVENT_CHOICES = [
        ('arrived_pickup', 'Arrived at Pickup'),
        ('departed_pickup', 'Departed Pickup'),
        ('arrived_delivery', 'Arrived at Delivery'),
    ]

    load = models.ForeignKey(Load, on_delete=models.CASCADE, related_name='geofence_events')
    driver = models.ForeignKey('drivers.Driver', on_delete=models.CASCADE, related_name='geofence_events')
    event_type = models.CharField(max_length=20, choices=EVENT_CHOICES)
    latitude = models.DecimalField(max_digits=9, decimal_places=6)
    longitude = models.DecimalField(max_digits=9, decimal_places=6)
    accuracy = models.FloatField(null=True, blank=True)
    distance_meters = models.FloatField(null=True, blank=True)
    triggered_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'geofence_events'
        ordering = ['triggered_at']
        constraints = [
            models.UniqueConstraint(
                fields=['load', 'event_type'],
                name='unique_geofence_event_per_load'
            )
        ]

    def __str__(self):
        return f"{self.event_type} - Load {self.load_id} / Driver {self.driver_id}"


class DispatchBlast(models.Model):
    """One broadcast of a Load to a pool of eligible drivers (first to accept wins)"""

    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('sent', 'Sent'),
        ('accepted', 'Accepted'),
        ('expired', 'Expired'),
        ('cancelled', 'Cancelled'),
    ]
    OPEN_STATUSES = ('draft', 'sent')

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('normal', 'Normal'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    load = models.ForeignKey(Load, on_delete=models.PROTECT, related_name='blasts')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_blasts',
    )

    # Blast config
    hub = models.CharField(max_length=50, default='phoenix')
    hub_agnostic = models.BooleanField(default=False)
    message = models.TextField(blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    radius_miles = models.FloatField()

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    # Load status restored when the blast closes without a winner
    prior_load_status = models.CharField(max_length=20, default='pending')

    # Timing
    expires_at = models.DateTimeField()
    blast_sent_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)

    # Resolution
    accepted_by = models.ForeignKey(
        'drivers.Driver',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='won_blasts',
    )
    accepted_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)

    # Stats
    drivers_notified = models.PositiveIntegerField(default=0)
    drivers_viewed = models.PositiveIntegerField(default=0)
    drivers_declined = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'dispatch_blasts'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['load'],
                condition=Q(status__in=['draft', 'sent']),
                name='one_open_blast_per_load'
            )
        ]
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='blast_status_expiry'),
        ]

    def __str__(self):
        return f"Blast #{self.id} - Load {self.load_id} - {self.status}"

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES


class BlastResponse(models.Model):
    """A single driver's standing on a blast (the response ledger row)"""

    STATUS_CHOICES = [
        ('notified', 'Notified'),
        ('viewed', 'Viewed'),
        ('accepted', 'Accepted'),
        ('declined', 'Declined'),
        ('lost', 'Lost to another driver'),
        ('expired', 'Expired'),
    ]
    OPEN_STATUSES = ('notified', 'viewed')

    blast = models.ForeignKey(DispatchBlast, on_delete=models.CASCADE, related_name='responses')
    driver = models.ForeignKey('drivers.Driver', on_delete=models.CASCADE, related_name='blast_responses')

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='notified')
    distance_miles = models.FloatField(null=True, blank=True)
    response_time_ms = models.PositiveIntegerField(null=True, blank=True)
    decline_reason = models.TextField(blank=True)

    notified_at = models.DateTimeField(default=timezone.now)
    viewed_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'blast_responses'
        ordering = ['distance_miles', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['blast', 'driver'],
                name='unique_blast_driver'
            ),
            models.UniqueConstraint(
                fields=['blast'],
                condition=Q(status='accepted'),
                name='one_accepted_response_per_blast'
            ),
        ]
        indexes = [
            models.Index(fields=['driver', 'status'], name='blast_response_driver'),
        ]

    def __str__(self):
        return f"Response #{self.id} - Blast {self.blast_id} -> Driver {self.driver_id} ({self.status})"
