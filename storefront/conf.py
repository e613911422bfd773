"""Configuration layer for the storefront module.

This module provides a settings wrapper that allows setting default values
if the user hasn't specified them in settings.py.
"""

from datetime import timedelta

from django.conf import settings


class AppSettings:
    """
    Settings wrapper for accessing configuration.
    Allows setting default values if the user hasn't specified them in settings.py.
    """

    @property
    def ADMIN_TOKEN(self):
        return getattr(settings, "STOREFRONT_ADMIN_TOKEN", None)

    @property
    def SHOW_DOCS(self):
        return getattr(settings, "STOREFRONT_SHOW_DOCS", True)

    @property
    def API_TITLE(self):
        return getattr(settings, "STOREFRONT_API_TITLE", "Storefront API")

    @property
    def POPULAR_LIMIT_MAX(self):
        return getattr(settings, "STOREFRONT_POPULAR_LIMIT_MAX", 20)

    @property
    def FEATURED_LIMIT_MAX(self):
        return getattr(settings, "STOREFRONT_FEATURED_LIMIT_MAX", 10)

    @property
    def REVIEW_PAGE_SIZE(self):
        return getattr(settings, "STOREFRONT_REVIEW_PAGE_SIZE", 10)

    @property
    def PUBLIC_REVIEW_PAGE_SIZE(self):
        return getattr(settings, "STOREFRONT_PUBLIC_REVIEW_PAGE_SIZE", 3)

    @property
    def SCHEDULE_DEFAULT_DELAY(self) -> timedelta:
        """Used when a post is scheduled without an explicit time."""
        return getattr(settings, "STOREFRONT_SCHEDULE_DEFAULT_DELAY", timedelta(hours=1))


# Create singleton instance
storefront_settings = AppSettings()
