"""Top-level package for Django configuration.

This package exposes application configuration for the marketplace: the
settings modules for different environments, the entry points for WSGI
and ASGI, and the composition root that wires the client sync layer.
"""

# Import the Celery application as soon as Django starts. Without this
# the shared task registry will not be populated.
from .celery import app as celery_app  # noqa: F401
