import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='RideEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('offer', 'Offer'), ('request', 'Request')], max_length=10)),
                ('driver_mode', models.CharField(blank=True, choices=[('personal_vehicle', 'Personal vehicle'), ('commercial_ride_share', 'Commercial ride-share')], max_length=30, null=True)),
                ('departure_location', models.TextField(blank=True, default='')),
                ('capacity', models.PositiveIntegerField(default=0)),
                ('passengers', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('active', 'Active'), ('cancelled', 'Cancelled'), ('completed', 'Completed')], default='active', max_length=20)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ride_entries', to=settings.AUTH_USER_MODEL)),
                ('party', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ride_entries', to='parties.party')),
            ],
            options={
                'db_table': 'ride_entries',
                'ordering': ['created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='rideentry',
            index=models.Index(fields=['party', 'status'], name='ride_party_status_idx'),
        ),
        migrations.AddIndex(
            model_name='rideentry',
            index=models.Index(fields=['party', 'kind', 'status', 'owner'], name='ride_party_owner_idx'),
        ),
    ]
