"""Development settings for the marketplace project.

This module extends the base settings with development specific
configuration, such as enabling debug, allowing all hosts and running
Celery tasks eagerly. Do not use these settings in production!
"""

import os

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

# Use console email backend during development
EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

# No broker needed locally
CELERY_TASK_ALWAYS_EAGER = os.environ.get('CELERY_TASK_ALWAYS_EAGER', 'true').lower() == 'true'
CELERY_TASK_EAGER_PROPAGATES = True

LOG_LEVEL = 'DEBUG'
