"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import RideEntry


@admin.register(RideEntry)
class RideEntryAdmin(admin.ModelAdmin):
    """Ride offer / request admin"""
    list_display = ['id', 'party', 'kind', 'driver_mode', 'owner', 'capacity', 'status', 'created_at']
    list_filter = ['kind', 'status', 'driver_mode', 'created_at']
    search_fields = ['owner__username', 'departure_location', 'party__name']
    readonly_fields = ['version', 'created_at', 'updated_at', 'cancelled_at', 'completed_at']
    date_hierarchy = 'created_at'
