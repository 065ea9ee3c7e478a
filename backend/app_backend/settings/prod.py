from .settings import *
import os

DEBUG = False
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(',')
CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000").split(',')

SECRET_KEY = os.environ["DJANGO_SECRET_KEY"]

RIDESHARE = {
    **RIDESHARE,
    # Nominatim's usage policy asks for a contact in the User-Agent
    "GEOCODER_USER_AGENT": os.getenv("GEOCODER_USER_AGENT", RIDESHARE["GEOCODER_USER_AGENT"]),
}
