"""Models for the storefront content and loyalty workflows.

Covers the bonus ledger (accounts keyed by a free-form phone, plus deferred
pending bonuses), customer reviews awaiting moderation, and blog posts with
scheduled publication.
"""

from __future__ import annotations

import math

from django.core.exceptions import ValidationError
from django.core.validators import MaxLengthValidator, MinLengthValidator, RegexValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from .conf import storefront_settings
from .phone import LOOSE_PHONE_RE, normalize_phone

WORDS_PER_MINUTE = 200


class BonusAccount(models.Model):
    """
    Loyalty balance of a single customer.

    The customer is identified by the digits of `phone_number`; the stored
    string is only the display form. Nothing at the storage level prevents two
    rows whose phones differ in formatting but not in digits, so lookups go
    through BonusService which compares normalized phones.
    """

    phone_number = models.CharField(
        max_length=32,
        unique=True,
        verbose_name="Phone Number",
        help_text="Display form, e.g. '+7 (777) 123-45-67'.",
    )
    full_name = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        verbose_name="Full Name",
    )
    total_bonuses = models.PositiveIntegerField(default=0, verbose_name="Total Bonuses")
    used_bonuses = models.PositiveIntegerField(default=0, verbose_name="Used Bonuses")
    available_bonuses = models.PositiveIntegerField(
        default=0,
        verbose_name="Available Bonuses",
        help_text="Expected to equal total - used; kept in step by BonusService.",
    )
    last_updated = models.DateTimeField(default=timezone.now, verbose_name="Last Updated")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Updated At")

    class Meta:
        db_table = "storefront_bonus_accounts"
        verbose_name = "Bonus Account"
        verbose_name_plural = "Bonus Accounts"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.phone_number} ({self.available_bonuses}/{self.total_bonuses})"

    @property
    def normalized_phone(self) -> str:
        """Digits of the stored phone. Computed, never persisted."""
        return normalize_phone(self.phone_number)

    def is_balanced(self) -> bool:
        """
        Checks the expected counter relation.

        Returns:
            bool: True if available == total - used.
        """
        return self.available_bonuses == self.total_bonuses - self.used_bonuses


class PendingBonus(models.Model):
    """
    Bonus accrued from a sale that becomes creditable at `available_at`.
    """

    phone_number = models.CharField(max_length=32, db_index=True, verbose_name="Phone Number")
    full_name = models.CharField(max_length=255, null=True, blank=True, verbose_name="Full Name")
    sale_reference = models.CharField(
        max_length=100,
        db_index=True,
        verbose_name="Sale Reference",
        help_text="Identifier of the sale that produced this bonus",
    )
    bonus_amount = models.PositiveIntegerField(verbose_name="Bonus Amount")
    available_at = models.DateTimeField(db_index=True, verbose_name="Available At")
    is_processed = models.BooleanField(default=False, db_index=True, verbose_name="Processed")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Updated At")

    class Meta:
        db_table = "storefront_pending_bonuses"
        verbose_name = "Pending Bonus"
        verbose_name_plural = "Pending Bonuses"
        ordering = ["available_at"]
        indexes = [
            models.Index(fields=["available_at", "is_processed"], name="storefront_pb_due_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.phone_number} +{self.bonus_amount} @ {self.available_at:%Y-%m-%d}"

    def is_due(self, now=None) -> bool:
        return self.available_at <= (now or timezone.now())


class Review(models.Model):
    """
    Customer review awaiting or past moderation.

    pending -> approved | rejected. `reviewed_at` is stamped on moderation.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    phone = models.CharField(
        max_length=32,
        validators=[RegexValidator(LOOSE_PHONE_RE, "Invalid phone number format")],
        verbose_name="Phone",
    )
    content = models.TextField(
        validators=[
            MinLengthValidator(10, "Review must contain at least 10 characters"),
            MaxLengthValidator(1000, "Review must not exceed 1000 characters"),
        ],
        verbose_name="Content",
    )
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
        verbose_name="Status",
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Updated At")
    reviewed_at = models.DateTimeField(null=True, blank=True, verbose_name="Reviewed At")

    class Meta:
        db_table = "storefront_reviews"
        verbose_name = "Review"
        verbose_name_plural = "Reviews"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="storefront_rev_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Review #{self.pk} ({self.status})"

    def clean(self) -> None:
        """reviewed_at is set if and only if the review left pending."""
        if self.status == Review.Status.PENDING and self.reviewed_at is not None:
            raise ValidationError({"reviewed_at": "A pending review cannot have a review time."})
        if self.status != Review.Status.PENDING and self.reviewed_at is None:
            raise ValidationError({"reviewed_at": "A moderated review must have a review time."})
        super().clean()


class BlogPostQuerySet(models.QuerySet):
    """
    QuerySet for BlogPost with the public visibility rule.
    """

    def publicly_visible(self):
        """
        Posts the public may see.

        Rows written before the status field existed carry only the legacy
        `is_published` flag and a null status; they stay visible.
        """
        return self.filter(
            Q(status=BlogPost.Status.PUBLISHED)
            | Q(is_published=True, status__isnull=True)
        )

    def due_for_publication(self, now=None):
        return self.filter(
            status=BlogPost.Status.SCHEDULED,
            scheduled_at__lte=now or timezone.now(),
        )

    def legacy(self):
        """Published under the old flag only, awaiting migration."""
        return self.filter(is_published=True, status__isnull=True)


class BlogPost(models.Model):
    """
    Blog article with draft/scheduled/published lifecycle.
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SCHEDULED = "scheduled", "Scheduled"
        PUBLISHED = "published", "Published"

    slug = models.SlugField(
        max_length=200,
        unique=True,
        validators=[RegexValidator(r"^[a-z0-9-]+$", "Slug may contain only lowercase letters, digits and hyphens")],
        verbose_name="Slug",
    )
    title = models.CharField(max_length=200, verbose_name="Title")
    excerpt = models.CharField(max_length=300, blank=True, verbose_name="Excerpt")
    content = models.TextField(verbose_name="Content")
    preview_image = models.CharField(max_length=500, blank=True, verbose_name="Preview Image")
    tags = models.JSONField(default=list, blank=True, verbose_name="Tags")
    category = models.CharField(max_length=100, blank=True, default="general", verbose_name="Category")
    author_name = models.CharField(max_length=100, blank=True, default="", verbose_name="Author")

    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        null=True,
        blank=True,
        db_index=True,
        verbose_name="Status",
        help_text="Null only on rows created before statuses existed.",
    )
    is_published = models.BooleanField(
        default=False,
        verbose_name="Published (legacy)",
        help_text="Deprecated flag kept in sync with status.",
    )
    is_featured = models.BooleanField(default=False, db_index=True, verbose_name="Featured")
    scheduled_at = models.DateTimeField(null=True, blank=True, db_index=True, verbose_name="Scheduled At")
    published_at = models.DateTimeField(null=True, blank=True, verbose_name="Published At")

    views = models.PositiveIntegerField(default=0, verbose_name="Views")
    likes = models.PositiveIntegerField(default=0, verbose_name="Likes")
    reading_time = models.PositiveIntegerField(default=1, verbose_name="Reading Time (min)")
    related_posts = models.ManyToManyField(
        "self",
        symmetrical=False,
        blank=True,
        verbose_name="Related Posts",
    )

    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Updated At")

    objects = BlogPostQuerySet.as_manager()

    class Meta:
        db_table = "storefront_blog_posts"
        verbose_name = "Blog Post"
        verbose_name_plural = "Blog Posts"
        ordering = ["-published_at"]
        indexes = [
            models.Index(fields=["is_published", "published_at"], name="storefront_blog_pub_idx"),
            models.Index(fields=["views"], name="storefront_blog_views_idx"),
            models.Index(fields=["created_at"], name="storefront_blog_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.effective_status})"

    @property
    def effective_status(self) -> str:
        """
        Status with legacy rows resolved.

        A null status means the row predates statuses; `is_published` decides.
        """
        if self.status:
            return str(self.status)
        return BlogPost.Status.PUBLISHED.value if self.is_published else BlogPost.Status.DRAFT.value

    def is_visible(self) -> bool:
        return self.effective_status == BlogPost.Status.PUBLISHED

    def calculate_reading_time(self) -> int:
        word_count = len(self.content.split())
        self.reading_time = max(1, math.ceil(word_count / WORDS_PER_MINUTE))
        return self.reading_time

    def save(self, *args, **kwargs) -> None:
        """
        Keep the legacy flag and timestamps consistent with status.

        Legacy rows (null status) are saved as they are.
        """
        if self.status == BlogPost.Status.PUBLISHED:
            self.is_published = True
            if not self.published_at:
                self.published_at = timezone.now()
        elif self.status:
            self.is_published = False

        if self.status == BlogPost.Status.SCHEDULED and not self.scheduled_at:
            self.scheduled_at = timezone.now() + storefront_settings.SCHEDULE_DEFAULT_DELAY
        if self.status == BlogPost.Status.DRAFT:
            self.scheduled_at = None

        if self.tags:
            self.tags = [str(tag).strip().lower() for tag in self.tags if str(tag).strip()]
        super().save(*args, **kwargs)
