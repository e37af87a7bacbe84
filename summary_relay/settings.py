import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'your-secret-key-here')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DJANGO_DEBUG', 'False').lower() == 'true'

ALLOWED_HOSTS = os.getenv('DJANGO_ALLOWED_HOSTS', '*').split(',')

# Application definition
INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'summarizer',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
    'summarizer.handlers.middleware.SlackRequestMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
]

ROOT_URLCONF = 'summary_relay.urls'

WSGI_APPLICATION = 'summary_relay.wsgi.application'

# Summaries are not persisted; the database is only here to satisfy Django.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = False
USE_TZ = True

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Slack Configuration
SLACK_BOT_TOKEN = os.getenv('SLACK_BOT_TOKEN')
SLACK_SIGNING_SECRET = os.getenv('SLACK_SIGNING_SECRET')

# History window
SLACK_HISTORY_WINDOW_SEC = int(os.getenv('SLACK_HISTORY_WINDOW_SEC', 60 * 60 * 24))
SLACK_HISTORY_LIMIT = int(os.getenv('SLACK_HISTORY_LIMIT', 100))

# Provider call budget. Provider name, keys and models are read from the
# environment for every job (see summarizer.services.provider_service).
PROVIDER_TIMEOUT_MS = int(os.getenv('PROVIDER_TIMEOUT_MS', 30_000))

# Relay configuration: 'thread' runs the job in this process,
# 'http' hands it to the worker endpoint at RELAY_WORKER_URL.
RELAY_DISPATCH_MODE = os.getenv('RELAY_DISPATCH_MODE', 'thread').lower()
RELAY_WORKER_URL = os.getenv('RELAY_WORKER_URL')
RELAY_SHARED_SECRET = os.getenv('RELAY_SHARED_SECRET')
RELAY_DISPATCH_TIMEOUT_SEC = float(os.getenv('RELAY_DISPATCH_TIMEOUT_SEC', 2))

# Logging Configuration
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'file': {
            'class': 'logging.FileHandler',
            'filename': os.getenv('SUMMARIZER_LOG_FILE', str(BASE_DIR / 'summarizer.log')),
            'formatter': 'verbose',
            'delay': True,
        },
    },
    'formatters': {
        'verbose': {
            'format': '[{asctime}] {levelname} {name} {message}',
            'style': '{',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console', 'file'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'summarizer': {
            'handlers': ['console', 'file'],
            'level': os.getenv('SUMMARIZER_LOG_LEVEL', 'DEBUG'),
            'propagate': False,
        },
    },
}
