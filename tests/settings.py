from health_monitor_backend.settings import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CHANNEL_LAYERS = {
    'default': {'BACKEND': 'channels.layers.InMemoryChannelLayer'},
}

CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'
CELERY_TASK_ALWAYS_EAGER = True

HEALTH_MONITOR = {
    **HEALTH_MONITOR,  # noqa: F405
    'EMAIL_PROVIDERS': ['resend', 'sendgrid', 'mailgun'],
    'RESEND_API_KEY': 'test-resend',
    'SENDGRID_API_KEY': 'test-sendgrid',
    'MAILGUN_API_KEY': None,
    'MAILGUN_DOMAIN': None,
    'OPENAI_API_KEY': 'test-openai',
    'COOLDOWN_REDIS_URL': None,
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
