"""
Django settings for health_monitor_backend project.

Values come from the environment (optionally a ``.env`` file at the project
root). Engine tunables live in the ``HEALTH_MONITOR`` dict.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-change-me')

DEBUG = os.getenv('DJANGO_DEBUG', 'false').lower() in ('1', 'true', 'yes')

ALLOWED_HOSTS = [h for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]


# Application definition

INSTALLED_APPS = [
    'daphne',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'channels',
    'health_monitor_api',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'health_monitor_backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

ASGI_APPLICATION = 'health_monitor_backend.asgi.application'


# Database

if os.getenv('POSTGRES_DB'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('POSTGRES_DB'),
            'USER': os.getenv('POSTGRES_USER', 'postgres'),
            'PASSWORD': os.getenv('POSTGRES_PASSWORD', ''),
            'HOST': os.getenv('POSTGRES_HOST', 'localhost'),
            'PORT': os.getenv('POSTGRES_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Realtime

REDIS_URL = os.getenv('REDIS_URL')

if REDIS_URL:
    CHANNEL_LAYERS = {
        'default': {
            'BACKEND': 'channels_redis.core.RedisChannelLayer',
            'CONFIG': {'hosts': [REDIS_URL]},
        },
    }
else:
    CHANNEL_LAYERS = {
        'default': {'BACKEND': 'channels.layers.InMemoryChannelLayer'},
    }


# Background work

CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', REDIS_URL or 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', CELERY_BROKER_URL)
CELERY_TASK_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TIMEZONE = 'UTC'
CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True


# REST framework

REST_FRAMEWORK = {
    'EXCEPTION_HANDLER': 'health_monitor_api.views.api_exception_handler',
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'UNAUTHENTICATED_USER': None,
}


# Monitoring engine

HEALTH_MONITOR = {
    'WINDOW_CAPACITY': int(os.getenv('WINDOW_CAPACITY', '100')),
    'DETAIL_WINDOW': int(os.getenv('DETAIL_WINDOW', '20')),
    'ALERT_COOLDOWN_SECONDS': float(os.getenv('ALERT_COOLDOWN_SECONDS', '60')),
    'VARIABILITY_SAMPLES': int(os.getenv('VARIABILITY_SAMPLES', '10')),
    'IRREGULAR_VARIABILITY': float(os.getenv('IRREGULAR_VARIABILITY', '20')),
    # Shares alert cooldowns between worker processes; unset keeps them per process.
    'COOLDOWN_REDIS_URL': os.getenv('COOLDOWN_REDIS_URL', REDIS_URL),
    'EMAIL_PROVIDERS': [p for p in os.getenv('EMAIL_PROVIDERS', 'resend,sendgrid,mailgun').split(',') if p],
    'EMAIL_TIMEOUT_SECONDS': float(os.getenv('EMAIL_TIMEOUT_SECONDS', '10')),
    'FROM_EMAIL': os.getenv('FROM_EMAIL', 'alerts@healthmonitor.local'),
    'RESEND_API_KEY': os.getenv('RESEND_API_KEY'),
    'SENDGRID_API_KEY': os.getenv('SENDGRID_API_KEY'),
    'MAILGUN_API_KEY': os.getenv('MAILGUN_API_KEY'),
    'MAILGUN_DOMAIN': os.getenv('MAILGUN_DOMAIN'),
    'ASSISTANT_MODELS': [m for m in os.getenv('ASSISTANT_MODELS', 'gpt-4o,gpt-4o-mini').split(',') if m],
    'OPENAI_API_KEY': os.getenv('OPENAI_API_KEY'),
}


# Internationalization

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'


# Logging

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'health_monitor_api': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
