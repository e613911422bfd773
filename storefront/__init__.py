"""Storefront module for bonus lookup, review moderation and blog publication."""

# Models are not re-exported here: importing them before django.setup() raises AppRegistryNotReady.
# Use: from storefront.models import ...
