"""Authorization for the storefront admin API.

The admin API is protected by a single Bearer token (STOREFRONT_ADMIN_TOKEN).
A successful check yields an AdminContext, which is passed explicitly to every
service call that changes moderation or ledger data.
"""

from __future__ import annotations

from dataclasses import dataclass

from ninja.security import HttpBearer

from .conf import storefront_settings


@dataclass(frozen=True)
class AdminContext:
    """Who is acting on admin data, and through which channel."""

    subject: str
    channel: str = "api"

    def __str__(self) -> str:
        return f"{self.channel}:{self.subject}"

    @classmethod
    def from_user(cls, user) -> AdminContext:
        """Context for a logged-in Django staff user (admin site actions)."""
        return cls(subject=user.get_username() or f"user-{user.pk}", channel="django-admin")


class AdminTokenAuth(HttpBearer):
    """Bearer token authentication for the admin API.

    Validates the Authorization: Bearer <token> header against STOREFRONT_ADMIN_TOKEN.
    """

    def authenticate(self, request, token):
        """Validate token and return an AdminContext if it matches.

        Args:
            request: The HTTP request (unused).
            token: The Bearer token from the Authorization header.

        Returns:
            AdminContext if valid; None otherwise (also when no token is configured).
        """
        expected = storefront_settings.ADMIN_TOKEN
        if expected and token == expected:
            return AdminContext(subject="admin-token")
        return None
