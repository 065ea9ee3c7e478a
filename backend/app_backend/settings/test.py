import os

from .settings import *

DEBUG = False
SECRET_KEY = "test-secret-key"

# Row-locking tests (rides.test_concurrency) only run against PostgreSQL
if not os.getenv("POSTGRES_DB"):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',
        }
    }

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

RIDESHARE = {
    **RIDESHARE,
    "GEOCODER_URL": "http://geocoder.invalid/search",
    "GEOCODER_TIMEOUT_SECONDS": 1.0,
    "NOTIFIER": "realtime.notifications.ChannelsNotifier",
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {'null': {'class': 'logging.NullHandler'}},
    'root': {'handlers': ['null'], 'level': 'CRITICAL'},
}
