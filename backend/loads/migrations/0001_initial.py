import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('drivers', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Load',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference_number', models.CharField(blank=True, max_length=40)),
                ('hub', models.CharField(default='phoenix', max_length=50)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('assigned', 'Assigned'), ('blasted', 'Blasted'), ('in_progress', 'In Progress'), ('arrived_pickup', 'Arrived at Pickup'), ('in_transit', 'In Transit'), ('arrived_delivery', 'Arrived at Delivery'), ('delivered', 'Delivered'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('failed', 'Failed')], default='pending', max_length=20)),
                ('pickup_address', models.TextField(blank=True)),
                ('pickup_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('pickup_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('delivery_address', models.TextField(blank=True)),
                ('delivery_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('delivery_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('vehicle_type', models.CharField(blank=True, max_length=30)),
                ('sla_deadline', models.DateTimeField(blank=True, null=True)),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('arrived_pickup_at', models.DateTimeField(blank=True, null=True)),
                ('picked_up_at', models.DateTimeField(blank=True, null=True)),
                ('arrived_delivery_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('dispatcher', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='dispatched_loads', to=settings.AUTH_USER_MODEL)),
                ('driver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='loads', to='drivers.driver')),
            ],
            options={
                'db_table': 'loads',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['driver', 'status'], name='load_driver_status'),
                    models.Index(fields=['status', 'sla_deadline'], name='load_status_sla'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LoadStatusEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('previous_status', models.CharField(blank=True, max_length=20, null=True)),
                ('new_status', models.CharField(max_length=20)),
                ('changed_by', models.CharField(max_length=64)),
                ('reason', models.TextField(blank=True)),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('load', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_events', to='loads.load')),
            ],
            options={
                'db_table': 'load_status_events',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['load', '-created_at'], name='load_event_latest'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GeofenceEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event_type', models.CharField(choices=[('arrived_pickup', 'Arrived at Pickup'), ('departed_pickup', 'Departed Pickup'), ('arrived_delivery', 'Arrived at Delivery')], max_length=20)),
                ('latitude', models.DecimalField(decimal_places=6, max_digits=9)),
                ('longitude', models.DecimalField(decimal_places=6, max_digits=9)),
                ('accuracy', models.FloatField(blank=True, null=True)),
                ('distance_meters', models.FloatField(blank=True, null=True)),
                ('triggered_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('driver', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='geofence_events', to='drivers.driver')),
                ('load', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='geofence_events', to='loads.load')),
            ],
            options={
                'db_table': 'geofence_events',
                'ordering': ['triggered_at'],
                'constraints': [
                    models.UniqueConstraint(fields=('load', 'event_type'), name='unique_geofence_event_per_load'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DispatchBlast',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('hub', models.CharField(default='phoenix', max_length=50)),
                ('hub_agnostic', models.BooleanField(default=False)),
                ('message', models.TextField(blank=True)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('normal', 'Normal'), ('high', 'High'), ('urgent', 'Urgent')], default='normal', max_length=10)),
                ('radius_miles', models.FloatField()),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('sent', 'Sent'), ('accepted', 'Accepted'), ('expired', 'Expired'), ('cancelled', 'Cancelled')], default='draft', max_length=20)),
                ('prior_load_status', models.CharField(default='pending', max_length=20)),
                ('expires_at', models.DateTimeField()),
                ('blast_sent_at', models.DateTimeField(blank=True, null=True)),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True)),
                ('drivers_notified', models.PositiveIntegerField(default=0)),
                ('drivers_viewed', models.PositiveIntegerField(default=0)),
                ('drivers_declined', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('accepted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='won_blasts', to='drivers.driver')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_blasts', to=settings.AUTH_USER_MODEL)),
                ('load', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='blasts', to='loads.load')),
            ],
            options={
                'db_table': 'dispatch_blasts',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'expires_at'], name='blast_status_expiry'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ['draft', 'sent'])), fields=('load',), name='one_open_blast_per_load'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BlastResponse',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('notified', 'Notified'), ('viewed', 'Viewed'), ('accepted', 'Accepted'), ('declined', 'Declined'), ('lost', 'Lost to another driver'), ('expired', 'Expired')], default='notified', max_length=20)),
                ('distance_miles', models.FloatField(blank=True, null=True)),
                ('response_time_ms', models.PositiveIntegerField(blank=True, null=True)),
                ('decline_reason', models.TextField(blank=True)),
                ('notified_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('viewed_at', models.DateTimeField(blank=True, null=True)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('blast', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='responses', to='loads.dispatchblast')),
                ('driver', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='blast_responses', to='drivers.driver')),
            ],
            options={
                'db_table': 'blast_responses',
                'ordering': ['distance_miles', 'id'],
                'indexes': [
                    models.Index(fields=['driver', 'status'], name='blast_response_driver'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('blast', 'driver'), name='unique_blast_driver'),
                    models.UniqueConstraint(condition=models.Q(('status', 'accepted')), fields=('blast',), name='one_accepted_response_per_blast'),
                ],
            },
        ),
    ]
