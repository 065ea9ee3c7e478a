from django.contrib import admin
from .models import GeocodeCacheEntry


@admin.register(GeocodeCacheEntry)
class GeocodeCacheEntryAdmin(admin.ModelAdmin):
    list_display = ('address', 'lat', 'lng', 'created_at')
    search_fields = ('address', 'address_hash')
    readonly_fields = ('address_hash', 'created_at')
