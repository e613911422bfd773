"""Django admin registrations for storefront models.

Provides admin interfaces for BonusAccount, PendingBonus, Review and BlogPost.
Moderation and publication actions go through the services, so the admin
site triggers the same signals and logging as the API.
"""

from __future__ import annotations

from django.contrib import admin
from django.contrib.messages import constants as message_constants
from django.utils.translation import gettext_lazy as _

from .auth import AdminContext
from .exceptions import StorefrontError
from .models import BlogPost, BonusAccount, PendingBonus, Review
from .phone import is_display_phone
from .services import BlogService, ReviewService


@admin.register(BonusAccount)
class BonusAccountAdmin(admin.ModelAdmin):
    """Admin for customer bonus balances."""

    list_display = (
        "id",
        "phone_number",
        "normalized_phone_display",
        "full_name",
        "available_bonuses",
        "total_bonuses",
        "used_bonuses",
        "last_updated",
        "display_format_ok",
        "balanced",
    )
    search_fields = ("phone_number", "full_name")
    readonly_fields = ("created_at", "updated_at", "last_updated")
    ordering = ("-created_at",)

    @admin.display(description=_("Digits"))
    def normalized_phone_display(self, obj):
        return obj.normalized_phone

    @admin.display(description=_("Display format"), boolean=True)
    def display_format_ok(self, obj):
        return is_display_phone(obj.phone_number)

    @admin.display(description=_("Balanced"), boolean=True)
    def balanced(self, obj):
        """available == total - used."""
        return obj.is_balanced()


@admin.register(PendingBonus)
class PendingBonusAdmin(admin.ModelAdmin):
    list_display = ("id", "phone_number", "full_name", "sale_reference", "bonus_amount", "available_at", "is_processed")
    list_filter = ("is_processed", "available_at")
    search_fields = ("phone_number", "full_name", "sale_reference")
    readonly_fields = ("created_at", "updated_at")


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """Admin for customer reviews with bulk moderation actions."""

    list_display = ("id", "phone", "short_content", "status", "created_at", "reviewed_at")
    list_filter = ("status", "created_at")
    search_fields = ("phone", "content")
    readonly_fields = ("created_at", "updated_at", "reviewed_at")
    actions = ["approve_reviews", "reject_reviews"]

    @admin.display(description=_("Content"))
    def short_content(self, obj):
        if len(obj.content) <= 60:
            return obj.content
        return f"{obj.content[:57]}..."

    def _moderate(self, request, queryset, status: str) -> None:
        actor = AdminContext.from_user(request.user)
        done = 0
        for review in queryset:
            try:
                ReviewService.moderate(review.pk, status, actor=actor)
            except StorefrontError as exc:
                self.message_user(
                    request,
                    f"Review #{review.pk}: {exc.message}",
                    level=message_constants.ERROR,
                    fail_silently=True,
                )
                continue
            done += 1
        self.message_user(request, f"{done} review(s) set to {status}.", fail_silently=True)

    @admin.action(description=_("Approve selected reviews"))
    def approve_reviews(self, request, queryset):
        self._moderate(request, queryset, Review.Status.APPROVED)

    @admin.action(description=_("Reject selected reviews"))
    def reject_reviews(self, request, queryset):
        self._moderate(request, queryset, Review.Status.REJECTED)


@admin.register(BlogPost)
class BlogPostAdmin(admin.ModelAdmin):
    """Admin for blog posts with publication actions."""

    list_display = (
        "id",
        "title",
        "slug",
        "status_display",
        "is_featured",
        "scheduled_at",
        "published_at",
        "views",
        "likes",
    )
    list_filter = ("status", "is_published", "is_featured", "category")
    search_fields = ("title", "slug", "excerpt")
    prepopulated_fields = {"slug": ("title",)}
    readonly_fields = ("views", "likes", "reading_time", "created_at", "updated_at")
    filter_horizontal = ("related_posts",)
    actions = ["publish_now", "make_draft"]

    @admin.display(description=_("Status"))
    def status_display(self, obj):
        """Effective status; legacy rows are marked."""
        if obj.status:
            return obj.status
        return f"{obj.effective_status} (legacy)"

    def save_model(self, request, obj, form, change):
        obj.calculate_reading_time()
        super().save_model(request, obj, form, change)

    def _set_status(self, request, queryset, status: str) -> None:
        actor = AdminContext.from_user(request.user)
        done = 0
        for post in queryset:
            try:
                BlogService.set_status(post.slug, status, actor=actor)
            except StorefrontError as exc:
                self.message_user(
                    request,
                    f"{post.slug}: {exc.message}",
                    level=message_constants.ERROR,
                    fail_silently=True,
                )
                continue
            done += 1
        self.message_user(request, f"{done} post(s) set to {status}.", fail_silently=True)

    @admin.action(description=_("Publish selected posts now"))
    def publish_now(self, request, queryset):
        self._set_status(request, queryset, BlogPost.Status.PUBLISHED)

    @admin.action(description=_("Move selected posts to draft"))
    def make_draft(self, request, queryset):
        self._set_status(request, queryset, BlogPost.Status.DRAFT)
