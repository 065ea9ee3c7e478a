from django.urls import path
from . import views

app_name = 'geocoding'

urlpatterns = [
    path('', views.geocode_address, name='geocode'),
]
