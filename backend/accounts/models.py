from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Extended user model with the profile fields the ride-sharing tab reads"""

    full_name = models.CharField(max_length=150, blank=True, default='')
    # Default departure address, used when a ride request is posted without one
    profile_location = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'users'

    def __str__(self):
        return self.full_name or self.username
