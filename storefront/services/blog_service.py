"""Service for blog publication and public listings.

Scheduled posts are not promoted by a timer. Every public read first runs
the publication sweep, which promotes the scheduled posts whose time has
come. The sweep is a single UPDATE and is safe to run on every request.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from asgiref.sync import sync_to_async
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from ..auth import AdminContext
from ..conf import storefront_settings
from ..exceptions import Conflict, NotFound, ValidationFailed
from ..models import BlogPost
from ..signals import post_liked, posts_published
from .review_service import pagination_meta, paginate

logger = logging.getLogger(__name__)

POPULAR_DEFAULT_LIMIT = 10
FEATURED_DEFAULT_LIMIT = 3
LATEST_DEFAULT_LIMIT = 10
RELATED_POSTS_LIMIT = 3
SORTABLE_FIELDS = ("published_at", "views", "likes", "created_at")
AUTHORED_FIELDS = (
    "slug", "title", "excerpt", "content", "preview_image", "tags",
    "category", "author_name", "status", "is_featured", "scheduled_at",
)


def _cap(limit: int | None, default: int, ceiling: int) -> int:
    """Caller's limit bounded to [1, ceiling]."""
    if limit is None:
        return default
    return max(1, min(limit, ceiling))


def _newest_first():
    return F("published_at").desc(nulls_last=True)


class BlogService:
    """Service for the publication sweep, public listings and post admin."""

    @classmethod
    def publish_scheduled_posts(cls, now: datetime | None = None) -> int:
        """
        Promotes scheduled posts whose time has passed.

        published_at is set to the scheduled time, not to the time of the
        sweep, so listings sort by the intended publication moment. Drafts and
        already published posts are not matched.

        Returns:
            int: Number of promoted posts.
        """
        now = now or timezone.now()
        promoted = BlogPost.objects.due_for_publication(now).update(
            status=BlogPost.Status.PUBLISHED,
            is_published=True,
            published_at=F("scheduled_at"),
            updated_at=now,
        )
        if promoted:
            logger.info(f"Published {promoted} scheduled posts")
            posts_published.send(sender=cls, count=promoted)
        return promoted

    @classmethod
    def popular(cls, limit: int | None = None) -> list[BlogPost]:
        """Visible posts by views, then likes. At most POPULAR_LIMIT_MAX."""
        cls.publish_scheduled_posts()
        limit = _cap(limit, POPULAR_DEFAULT_LIMIT, storefront_settings.POPULAR_LIMIT_MAX)
        return list(
            BlogPost.objects.publicly_visible()
            .order_by("-views", "-likes", "pk")[:limit]
        )

    @classmethod
    def featured(cls, limit: int | None = None) -> list[BlogPost]:
        """Visible featured posts, newest first. At most FEATURED_LIMIT_MAX."""
        cls.publish_scheduled_posts()
        limit = _cap(limit, FEATURED_DEFAULT_LIMIT, storefront_settings.FEATURED_LIMIT_MAX)
        return list(
            BlogPost.objects.publicly_visible()
            .filter(is_featured=True)
            .order_by(_newest_first(), "-pk")[:limit]
        )

    @classmethod
    def latest(cls, limit: int | None = None) -> list[BlogPost]:
        cls.publish_scheduled_posts()
        limit = _cap(limit, LATEST_DEFAULT_LIMIT, storefront_settings.POPULAR_LIMIT_MAX)
        return list(
            BlogPost.objects.publicly_visible()
            .order_by(_newest_first(), "-pk")[:limit]
        )

    @classmethod
    def list_posts(
        cls,
        page: int = 1,
        limit: int = 12,
        search: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        sort_by: str = "published_at",
        sort_order: str = "desc",
        featured: bool | None = None,
    ) -> dict[str, Any]:
        """
        Paginated public listing with optional filters.

        Args:
            search: Case-insensitive match on title, excerpt or content.
            category: Case-insensitive substring of the category.
            tags: Posts sharing at least one of these tags.
            sort_by: One of published_at, views, likes, created_at.
            sort_order: "asc" or "desc".
            featured: If True, only featured posts.
        """
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationFailed(f"sort_by must be one of: {', '.join(SORTABLE_FIELDS)}")
        if sort_order not in ("asc", "desc"):
            raise ValidationFailed("sort_order must be 'asc' or 'desc'")
        offset, limit = paginate(page, limit)

        cls.publish_scheduled_posts()
        qs = BlogPost.objects.publicly_visible()
        if featured:
            qs = qs.filter(is_featured=True)
        if category:
            qs = qs.filter(category__icontains=category.strip())
        if search:
            term = search.strip()
            qs = qs.filter(
                Q(title__icontains=term) | Q(excerpt__icontains=term) | Q(content__icontains=term)
            )
        wanted = {tag.strip().lower() for tag in tags or [] if tag.strip()}
        if wanted:
            # JSON containment is not portable across backends; match tags in Python.
            ids = [post.pk for post in qs.only("pk", "tags") if wanted & set(post.tags or [])]
            qs = qs.filter(pk__in=ids)

        ordering = F(sort_by).asc(nulls_first=True) if sort_order == "asc" else F(sort_by).desc(nulls_last=True)
        posts = list(qs.order_by(ordering, "-pk")[offset:offset + limit])
        total = qs.count()
        return {"posts": posts, "pagination": pagination_meta(page, limit, total, len(posts))}

    @classmethod
    def related_posts(cls, post: BlogPost) -> list[BlogPost]:
        """Explicitly related visible posts, else visible posts sharing a tag."""
        related = list(
            post.related_posts.all().publicly_visible()[:RELATED_POSTS_LIMIT]
        )
        if related or not post.tags:
            return related

        own_tags = set(post.tags)
        candidates = BlogPost.objects.publicly_visible().exclude(pk=post.pk).order_by(_newest_first(), "-pk")
        for candidate in candidates:
            if own_tags & set(candidate.tags or []):
                related.append(candidate)
                if len(related) == RELATED_POSTS_LIMIT:
                    break
        return related

    @classmethod
    def get_post(cls, slug: str, increment_views: bool = True) -> BlogPost:
        """
        Visible post by slug, with `related` attached.

        Raises:
            NotFound: Unknown slug or post not publicly visible.
        """
        cls.publish_scheduled_posts()
        qs = BlogPost.objects.publicly_visible().filter(slug=slug)
        if increment_views:
            qs.update(views=F("views") + 1)
        post = qs.first()
        if post is None:
            raise NotFound("Blog post not found")
        post.related = cls.related_posts(post)
        return post

    @classmethod
    def like(cls, slug: str) -> int:
        """
        Adds one like to a visible post.

        Returns:
            int: The new like count.

        Raises:
            NotFound: Unknown slug or post not publicly visible.
        """
        qs = BlogPost.objects.publicly_visible().filter(slug=slug)
        if not qs.update(likes=F("likes") + 1):
            raise NotFound("Blog post not found")
        likes = qs.values_list("likes", flat=True).first()
        post_liked.send(sender=cls, slug=slug, likes=likes)
        return likes

    @classmethod
    def create_post(cls, data: dict[str, Any], actor: AdminContext) -> BlogPost:
        """
        Creates a post from authored fields.

        Raises:
            ValidationFailed: Field validation failed.
            Conflict: The slug is taken.
        """
        fields = {key: value for key, value in data.items() if key in AUTHORED_FIELDS and value is not None}
        fields.setdefault("status", BlogPost.Status.DRAFT)
        post = BlogPost(**fields)
        post.calculate_reading_time()
        try:
            post.full_clean(validate_unique=False)
        except ValidationError as exc:
            raise ValidationFailed("Validation failed", details=exc.message_dict)
        if BlogPost.objects.filter(slug=post.slug).exists():
            raise Conflict("A blog post with this slug already exists", slug=post.slug)
        try:
            with transaction.atomic():
                post.save()
        except IntegrityError:
            raise Conflict("A blog post with this slug already exists", slug=post.slug)

        logger.info(f"Blog post {post.slug} created by {actor}")
        return post

    @classmethod
    def set_status(
        cls,
        slug: str,
        status: str,
        actor: AdminContext,
        scheduled_at: datetime | None = None,
    ) -> BlogPost:
        """
        Moves a post to draft, scheduled or published directly.

        Publishing clears nothing else; scheduling without a time uses
        STOREFRONT_SCHEDULE_DEFAULT_DELAY.
        """
        if status not in BlogPost.Status.values:
            raise ValidationFailed("Invalid status. Use draft, scheduled or published", status=status)
        post = BlogPost.objects.filter(slug=slug).first()
        if post is None:
            raise NotFound("Blog post not found")

        post.status = status
        if status == BlogPost.Status.SCHEDULED:
            post.scheduled_at = scheduled_at
        post.save()

        logger.info(f"Blog post {slug} set to {status} by {actor}")
        return post

    @classmethod
    def delete_post(cls, slug: str, actor: AdminContext) -> None:
        deleted, _ = BlogPost.objects.filter(slug=slug).delete()
        if not deleted:
            raise NotFound("Blog post not found")
        logger.info(f"Blog post {slug} deleted by {actor}")

    @classmethod
    def migrate_legacy_status(cls, dry_run: bool = False) -> list[str]:
        """
        Sets status=published on rows that only carry the legacy flag.

        Returns:
            list[str]: Slugs of the affected posts.
        """
        slugs = list(BlogPost.objects.legacy().order_by("pk").values_list("slug", flat=True))
        if slugs and not dry_run:
            BlogPost.objects.legacy().update(status=BlogPost.Status.PUBLISHED)
            logger.info(f"Migrated {len(slugs)} legacy blog posts to status=published")
        return slugs

    @classmethod
    async def apopular(cls, limit: int | None = None) -> list[BlogPost]:
        return await sync_to_async(cls.popular, thread_sensitive=True)(limit)

    @classmethod
    async def afeatured(cls, limit: int | None = None) -> list[BlogPost]:
        return await sync_to_async(cls.featured, thread_sensitive=True)(limit)

    @classmethod
    async def alatest(cls, limit: int | None = None) -> list[BlogPost]:
        return await sync_to_async(cls.latest, thread_sensitive=True)(limit)

    @classmethod
    async def alist_posts(cls, **kwargs) -> dict[str, Any]:
        return await sync_to_async(cls.list_posts, thread_sensitive=True)(**kwargs)

    @classmethod
    async def aget_post(cls, slug: str, increment_views: bool = True) -> BlogPost:
        return await sync_to_async(cls.get_post, thread_sensitive=True)(slug, increment_views)

    @classmethod
    async def alike(cls, slug: str) -> int:
        return await sync_to_async(cls.like, thread_sensitive=True)(slug)

    @classmethod
    async def acreate_post(cls, data: dict[str, Any], actor: AdminContext) -> BlogPost:
        return await sync_to_async(cls.create_post, thread_sensitive=True)(data, actor)

    @classmethod
    async def aset_status(cls, *args, **kwargs) -> BlogPost:
        return await sync_to_async(cls.set_status, thread_sensitive=True)(*args, **kwargs)

    @classmethod
    async def adelete_post(cls, slug: str, actor: AdminContext) -> None:
        await sync_to_async(cls.delete_post, thread_sensitive=True)(slug, actor)
