from django.contrib import admin
from .models import Party


@admin.register(Party)
class PartyAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'organizer', 'address', 'starts_at', 'created_at']
    search_fields = ['name', 'address', 'organizer__username']
    date_hierarchy = 'created_at'
