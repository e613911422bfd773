"""Pytest hooks and fixtures for storefront tests.

Ensures DJANGO_SETTINGS_MODULE is set when running tests from the repo root
without pyproject.toml in effect (e.g. when invoked from another cwd).
"""

import os

import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "storefront.tests.test_settings")
os.environ["NINJA_SKIP_REGISTRY"] = "yes"


@pytest.fixture
def admin_actor():
    from storefront.auth import AdminContext

    return AdminContext(subject="tester")
