"""
Domain errors

Every error carries a ``user_message``: a short, localized description of
the failed action in domain terms. Internal details stay in ``str(error)``
and in the logs.
"""

from django.utils.translation import gettext_lazy as _  # type: ignore


class MarketplaceError(Exception):
    """Base class for all errors raised by the sync layer"""

    default_user_message = _("Operation failed")

    def __init__(self, message: str = '', *, user_message=None):
        super().__init__(message or str(self.default_user_message))
        self.user_message = user_message or self.default_user_message


class AuthError(MarketplaceError):
    """Bad credentials, expired or missing session"""

    default_user_message = _("Authentication failed")


class GatewayError(MarketplaceError):
    """Query or mutation against the backend failed"""

    default_user_message = _("Failed to reach the server")


class DuplicateError(GatewayError):
    """Unique constraint violated by an insert or update"""

    default_user_message = _("Record already exists")


class DuplicateSlugError(DuplicateError):
    """Category slug already taken"""

    default_user_message = _("A category with this slug already exists")

    def __init__(self, slug: str):
        super().__init__(f"Category slug already exists: {slug}")
        self.slug = slug


class CustomFieldError(MarketplaceError):
    """Listing custom data does not satisfy the category schema"""

    default_user_message = _("Failed to save: some fields are invalid")

    def __init__(self, errors: dict):
        super().__init__(
            "; ".join(f"{name}: {message}" for name, message in errors.items())
        )
        self.errors = errors


class MediaProcessingError(MarketplaceError):
    """Uploaded media could not be validated or stored"""

    default_user_message = _("Failed to upload file")
