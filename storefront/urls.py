"""URL configuration for the storefront module.

This module provides a "boxed" installation approach, allowing users to include
the storefront app with a single line in their main urls.py. All NinjaAPI
initialization logic is encapsulated within this package.
"""

import logging

from django.urls import path
from ninja import NinjaAPI

from .api import admin_router, public_router
from .conf import storefront_settings

logger = logging.getLogger(__name__)

# 1. Read settings from storefront_settings wrapper
SHOW_DOCS = storefront_settings.SHOW_DOCS
API_TITLE = storefront_settings.API_TITLE

# 2. Create API instance
# If SHOW_DOCS=False, pass None, which disables documentation path generation
api = NinjaAPI(
    title=API_TITLE,
    docs_url="/docs" if SHOW_DOCS else None,
    redoc_url="/redoc" if SHOW_DOCS else None,
    urls_namespace="storefront_default_api",  # To avoid conflicts with other APIs
)


# 3. Unexpected errors: full details go to the log, the client gets an opaque 500
@api.exception_handler(Exception)
def unexpected_error(request, exc):
    logger.exception(f"Unhandled error on {request.method} {request.path}: {exc}")
    return api.create_response(
        request,
        {"success": False, "message": "Internal server error"},
        status=500,
    )


# 4. Connect routers
api.add_router("", public_router)
api.add_router("/admin", admin_router)

# 5. Export urlpatterns for use in include()
urlpatterns = [
    path("", api.urls),
]
