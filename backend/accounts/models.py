from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Extended user model with dispatch role selection"""
    ROLE_CHOICES = [
        ('dispatcher', 'Dispatcher'),
        ('driver', 'Driver'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    phone_number = models.CharField(max_length=20, blank=True)

    class Meta:
        db_table = 'users'

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def is_dispatcher(self) -> bool:
        return self.role == 'dispatcher'

    @property
    def is_driver(self) -> bool:
        return self.role == 'driver'

    @property
    def actor_label(self) -> str:
        """Identity recorded on audit events (e.g. ``dispatcher:4``)."""
        return f"{self.role or 'user'}:{self.pk}"
