"""Service for customer reviews and their moderation.

A review is submitted as pending and moderated once into approved or
rejected. Moderating an already moderated review is accepted and simply
overwrites the previous decision and its timestamp.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from asgiref.sync import sync_to_async
from django.utils import timezone

from ..auth import AdminContext
from ..conf import storefront_settings
from ..exceptions import NotFound, ValidationFailed
from ..models import Review
from ..phone import is_loose_phone
from ..signals import review_deleted, review_moderated, review_submitted

logger = logging.getLogger(__name__)

MODERATION_TARGETS = (Review.Status.APPROVED, Review.Status.REJECTED)
MAX_PAGE_SIZE = 100
CONTENT_MIN_LENGTH = 10
CONTENT_MAX_LENGTH = 1000


def paginate(page: int, limit: int) -> tuple[int, int]:
    """Validates paging input and returns (offset, limit)."""
    if page < 1:
        raise ValidationFailed("page must be at least 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationFailed(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    return (page - 1) * limit, limit


def pagination_meta(page: int, limit: int, total: int, returned: int) -> dict[str, Any]:
    offset = (page - 1) * limit
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit),
        "has_more": offset + returned < total,
    }


class ReviewService:
    """Service for submitting, listing and moderating reviews."""

    @classmethod
    def submit(cls, phone: str, content: str) -> Review:
        """
        Creates a pending review from a public submission.

        Raises:
            ValidationFailed: Missing fields, content outside 10-1000 characters,
                or a phone with characters other than digits, spaces, dashes,
                parentheses and a leading plus.
        """
        phone = (phone or "").strip()
        content = (content or "").strip()
        if not phone or not content:
            raise ValidationFailed("Phone number and review text are required")
        if len(content) < CONTENT_MIN_LENGTH:
            raise ValidationFailed(f"Review must contain at least {CONTENT_MIN_LENGTH} characters")
        if len(content) > CONTENT_MAX_LENGTH:
            raise ValidationFailed(f"Review must not exceed {CONTENT_MAX_LENGTH} characters")
        if not is_loose_phone(phone):
            raise ValidationFailed("Invalid phone number format")

        review = Review(phone=phone, content=content, status=Review.Status.PENDING)
        review.full_clean()
        review.save()

        logger.info(f"Review {review.pk} submitted, awaiting moderation")
        review_submitted.send(sender=cls, review=review)
        return review

    @classmethod
    def moderate(cls, review_id: int, status: str, actor: AdminContext) -> Review:
        """
        Approves or rejects a review.

        The target status is checked before the database is touched. The
        update is a single-row UPDATE of status and reviewed_at.

        Args:
            review_id: Review primary key.
            status: "approved" or "rejected".
            actor: Who takes the decision.

        Returns:
            Review: The updated review.

        Raises:
            ValidationFailed: If status is anything else.
            NotFound: If the review does not exist.
        """
        if status not in MODERATION_TARGETS:
            raise ValidationFailed('Invalid status. Use "approved" or "rejected"', status=status)

        now = timezone.now()
        updated = Review.objects.filter(pk=review_id).update(
            status=status,
            reviewed_at=now,
            updated_at=now,
        )
        if not updated:
            raise NotFound("Review not found")

        review = Review.objects.get(pk=review_id)
        logger.info(f"Review {review_id} set to {status} by {actor}")
        review_moderated.send(sender=cls, review=review, actor=actor)
        return review

    @classmethod
    def delete(cls, review_id: int, actor: AdminContext) -> None:
        """Deletes a review in any state. Raises NotFound if it does not exist."""
        deleted, _ = Review.objects.filter(pk=review_id).delete()
        if not deleted:
            raise NotFound("Review not found")

        logger.info(f"Review {review_id} deleted by {actor}")
        review_deleted.send(sender=cls, review_id=review_id, actor=actor)

    @classmethod
    def list_for_admin(
        cls,
        status: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """
        Page of reviews for the back-office, newest first.

        Args:
            status: None for all, or one of pending/approved/rejected.
            page: 1-based page number.
            limit: Page size (defaults to STOREFRONT_REVIEW_PAGE_SIZE).

        Returns:
            dict: reviews, pending_count (independent of the filter) and pagination.
        """
        if limit is None:
            limit = storefront_settings.REVIEW_PAGE_SIZE
        if status and status not in Review.Status.values:
            raise ValidationFailed(
                "Invalid status filter. Use pending, approved or rejected",
                status=status,
            )
        offset, limit = paginate(page, limit)

        qs = Review.objects.all()
        if status:
            qs = qs.filter(status=status)

        reviews = list(qs.order_by("-created_at", "-pk")[offset:offset + limit])
        total = qs.count()
        pending_count = Review.objects.filter(status=Review.Status.PENDING).count()
        return {
            "reviews": reviews,
            "pending_count": pending_count,
            "pagination": pagination_meta(page, limit, total, len(reviews)),
        }

    @classmethod
    def list_approved(cls, page: int = 1, limit: int | None = None) -> dict[str, Any]:
        """Public page of approved reviews, newest first."""
        if limit is None:
            limit = storefront_settings.PUBLIC_REVIEW_PAGE_SIZE
        offset, limit = paginate(page, limit)
        qs = Review.objects.filter(status=Review.Status.APPROVED)
        reviews = list(qs.order_by("-created_at", "-pk")[offset:offset + limit])
        total = qs.count()
        return {
            "reviews": reviews,
            "pagination": pagination_meta(page, limit, total, len(reviews)),
        }

    @classmethod
    async def asubmit(cls, phone: str, content: str) -> Review:
        return await sync_to_async(cls.submit, thread_sensitive=True)(phone, content)

    @classmethod
    async def amoderate(cls, review_id: int, status: str, actor: AdminContext) -> Review:
        return await sync_to_async(cls.moderate, thread_sensitive=True)(review_id, status, actor)

    @classmethod
    async def adelete(cls, review_id: int, actor: AdminContext) -> None:
        await sync_to_async(cls.delete, thread_sensitive=True)(review_id, actor)

    @classmethod
    async def alist_for_admin(cls, *args, **kwargs) -> dict[str, Any]:
        return await sync_to_async(cls.list_for_admin, thread_sensitive=True)(*args, **kwargs)

    @classmethod
    async def alist_approved(cls, *args, **kwargs) -> dict[str, Any]:
        return await sync_to_async(cls.list_approved, thread_sensitive=True)(*args, **kwargs)
