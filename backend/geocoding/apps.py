"""Geocoding app configuration."""

from django.apps import AppConfig


class GeocodingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'geocoding'
