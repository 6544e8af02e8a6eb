"""Model definition for favorites.

A ``Favorite`` bookmarks a listing for a user. Duplicate favorites are
prevented via a unique constraint.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore


class Favorite(models.Model):
    """A user's favorite listing."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='favorites'
    )
    property = models.ForeignKey(
        'properties.Property', on_delete=models.CASCADE, related_name='favorited_by'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'favorites'
        unique_together = ('user', 'property')
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Favorite listing {self.property_id} by user {self.user_id}"
