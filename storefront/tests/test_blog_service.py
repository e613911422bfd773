import pytest
from datetime import timedelta

from django.utils import timezone

from storefront.exceptions import Conflict, NotFound, ValidationFailed
from storefront.models import BlogPost
from storefront.services import BlogService
from storefront.signals import posts_published


def make_post(slug, status=BlogPost.Status.PUBLISHED, **extra):
    extra.setdefault("title", slug.replace("-", " ").title())
    extra.setdefault("content", "Some words about coffee and pastries.")
    return BlogPost.objects.create(slug=slug, status=status, **extra)


def visible_slugs():
    return set(BlogPost.objects.publicly_visible().values_list("slug", flat=True))


@pytest.mark.django_db
class TestVisibility:
    def test_legacy_published_row_is_visible(self):
        legacy = make_post("legacy", status=None, is_published=True)
        assert legacy.status is None
        assert legacy.effective_status == "published"
        assert "legacy" in visible_slugs()

    def test_legacy_unpublished_row_is_hidden(self):
        make_post("legacy-draft", status=None, is_published=False)
        assert "legacy-draft" not in visible_slugs()

    def test_draft_never_visible(self):
        draft = make_post("draft", status=BlogPost.Status.DRAFT)
        BlogPost.objects.filter(pk=draft.pk).update(is_published=True)
        assert "draft" not in visible_slugs()
        assert not BlogPost.objects.get(pk=draft.pk).is_visible()

    def test_save_syncs_legacy_flag(self):
        post = make_post("synced")
        assert post.is_published is True
        assert post.published_at is not None

        post.status = BlogPost.Status.DRAFT
        post.scheduled_at = timezone.now()
        post.save()
        assert post.is_published is False
        assert post.scheduled_at is None

    def test_scheduled_without_time_gets_default_delay(self):
        before = timezone.now()
        post = make_post("later", status=BlogPost.Status.SCHEDULED)
        assert post.scheduled_at >= before + timedelta(minutes=59)


@pytest.mark.django_db
class TestPublicationSweep:
    def test_promotes_due_posts_once(self):
        now = timezone.now()
        due_at = now - timedelta(hours=2)
        make_post("due", status=BlogPost.Status.SCHEDULED, scheduled_at=due_at)
        make_post("future", status=BlogPost.Status.SCHEDULED, scheduled_at=now + timedelta(days=1))
        make_post("draft", status=BlogPost.Status.DRAFT)

        assert BlogService.publish_scheduled_posts(now) == 1
        first_visible = visible_slugs()
        published_at = BlogPost.objects.get(slug="due").published_at

        assert BlogService.publish_scheduled_posts(now) == 0
        assert visible_slugs() == first_visible == {"due"}
        assert BlogPost.objects.get(slug="due").published_at == published_at

    def test_published_at_is_scheduled_time(self):
        due_at = timezone.now() - timedelta(minutes=30)
        make_post("due", status=BlogPost.Status.SCHEDULED, scheduled_at=due_at)
        BlogService.publish_scheduled_posts()
        post = BlogPost.objects.get(slug="due")
        assert post.status == BlogPost.Status.PUBLISHED
        assert post.is_published is True
        assert post.published_at == due_at

    def test_published_posts_untouched(self):
        published = make_post("already")
        original = published.published_at
        BlogService.publish_scheduled_posts(timezone.now() + timedelta(days=365))
        published.refresh_from_db()
        assert published.published_at == original

    def test_signal_only_when_something_promoted(self):
        counts = []
        handler = lambda sender, count, **kwargs: counts.append(count)  # noqa: E731
        posts_published.connect(handler)
        try:
            BlogService.publish_scheduled_posts()
            make_post("due", status=BlogPost.Status.SCHEDULED, scheduled_at=timezone.now() - timedelta(seconds=1))
            BlogService.publish_scheduled_posts()
        finally:
            posts_published.disconnect(handler)
        assert counts == [1]

    def test_reads_run_the_sweep(self):
        make_post("due", status=BlogPost.Status.SCHEDULED, scheduled_at=timezone.now() - timedelta(minutes=1))
        assert [p.slug for p in BlogService.latest()] == ["due"]


@pytest.mark.django_db
class TestListings:
    def test_popular_caps_limit_and_sorts(self):
        for i in range(25):
            make_post(f"post-{i}", views=i % 7, likes=i)
        make_post("hidden", status=BlogPost.Status.DRAFT, views=1000)

        posts = BlogService.popular(limit=50)

        assert len(posts) == 20
        assert "hidden" not in {p.slug for p in posts}
        keys = [(p.views, p.likes) for p in posts]
        assert keys == sorted(keys, reverse=True)

    def test_popular_default_limit(self):
        for i in range(12):
            make_post(f"post-{i}")
        assert len(BlogService.popular()) == 10

    def test_featured_cap_and_order(self):
        now = timezone.now()
        for i in range(12):
            make_post(f"feat-{i}", is_featured=True, published_at=now - timedelta(days=i))
        make_post("plain", is_featured=False)

        posts = BlogService.featured(limit=50)

        assert len(posts) == 10
        assert posts[0].slug == "feat-0"
        assert all(p.is_featured for p in posts)
        assert len(BlogService.featured()) == 3

    def test_includes_legacy_rows(self):
        make_post("legacy", status=None, is_published=True, is_featured=True)
        assert [p.slug for p in BlogService.featured()] == ["legacy"]

    def test_list_posts_filters(self):
        make_post("latte-art", tags=["Coffee", "art"], category="Barista")
        make_post("croissants", tags=["bakery"], category="Kitchen")
        make_post("secret", status=BlogPost.Status.DRAFT, tags=["coffee"])

        by_tag = BlogService.list_posts(tags=["coffee"])
        assert [p.slug for p in by_tag["posts"]] == ["latte-art"]
        assert by_tag["pagination"]["total"] == 1

        by_category = BlogService.list_posts(category="kitchen")
        assert [p.slug for p in by_category["posts"]] == ["croissants"]

        by_search = BlogService.list_posts(search="LATTE")
        assert [p.slug for p in by_search["posts"]] == ["latte-art"]

    def test_list_posts_sorting(self):
        make_post("few", views=1)
        make_post("many", views=50)
        result = BlogService.list_posts(sort_by="views", sort_order="asc")
        assert [p.slug for p in result["posts"]] == ["few", "many"]

    def test_list_posts_rejects_unknown_sort(self):
        with pytest.raises(ValidationFailed):
            BlogService.list_posts(sort_by="title")


@pytest.mark.django_db
class TestPostDetail:
    def test_get_post_counts_views(self):
        make_post("hello", views=3)
        post = BlogService.get_post("hello")
        assert post.views == 4
        assert BlogService.get_post("hello", increment_views=False).views == 4

    def test_get_hidden_post(self):
        make_post("draft", status=BlogPost.Status.DRAFT)
        with pytest.raises(NotFound):
            BlogService.get_post("draft")
        assert BlogPost.objects.get(slug="draft").views == 0

    def test_related_by_explicit_relation(self):
        post = make_post("main", tags=["coffee"])
        linked = make_post("linked")
        make_post("same-tag", tags=["coffee"])
        post.related_posts.add(linked)
        assert [p.slug for p in BlogService.get_post("main").related] == ["linked"]

    def test_related_by_tag(self):
        make_post("main", tags=["coffee"])
        make_post("same-tag", tags=["coffee", "milk"])
        make_post("other", tags=["tea"])
        make_post("hidden-tag", status=BlogPost.Status.DRAFT, tags=["coffee"])
        assert [p.slug for p in BlogService.get_post("main").related] == ["same-tag"]

    def test_like(self):
        make_post("liked", likes=7)
        assert BlogService.like("liked") == 8
        assert BlogService.like("liked") == 9

    def test_like_hidden_or_unknown(self):
        make_post("draft", status=BlogPost.Status.DRAFT)
        with pytest.raises(NotFound):
            BlogService.like("draft")
        with pytest.raises(NotFound):
            BlogService.like("missing")
        assert BlogPost.objects.get(slug="draft").likes == 0


@pytest.mark.django_db
class TestPostAdmin:
    def test_create_post(self, admin_actor):
        post = BlogService.create_post(
            {"slug": "new-post", "title": "New", "content": "word " * 450, "tags": [" News "]},
            actor=admin_actor,
        )
        assert post.status == BlogPost.Status.DRAFT
        assert post.reading_time == 3
        assert post.tags == ["news"]
        assert not post.is_visible()

    def test_create_duplicate_slug(self, admin_actor):
        make_post("taken")
        with pytest.raises(Conflict):
            BlogService.create_post({"slug": "taken", "title": "T", "content": "c"}, actor=admin_actor)

    def test_create_invalid_slug(self, admin_actor):
        with pytest.raises(ValidationFailed) as exc_info:
            BlogService.create_post({"slug": "Bad Slug!", "title": "T", "content": "c"}, actor=admin_actor)
        assert "slug" in exc_info.value.data["details"]

    def test_set_status(self, admin_actor):
        make_post("draft", status=BlogPost.Status.DRAFT)
        when = timezone.now() + timedelta(days=2)

        scheduled = BlogService.set_status("draft", "scheduled", actor=admin_actor, scheduled_at=when)
        assert scheduled.scheduled_at == when
        assert not scheduled.is_visible()

        published = BlogService.set_status("draft", "published", actor=admin_actor)
        assert published.is_visible()
        assert published.is_published is True

    def test_set_status_errors(self, admin_actor):
        with pytest.raises(ValidationFailed):
            BlogService.set_status("any", "archived", actor=admin_actor)
        with pytest.raises(NotFound):
            BlogService.set_status("missing", "draft", actor=admin_actor)

    def test_delete_post(self, admin_actor):
        make_post("gone")
        BlogService.delete_post("gone", actor=admin_actor)
        assert not BlogPost.objects.filter(slug="gone").exists()
        with pytest.raises(NotFound):
            BlogService.delete_post("gone", actor=admin_actor)

    def test_migrate_legacy_status(self):
        make_post("legacy", status=None, is_published=True)
        make_post("legacy-hidden", status=None, is_published=False)

        assert BlogService.migrate_legacy_status(dry_run=True) == ["legacy"]
        assert BlogPost.objects.get(slug="legacy").status is None

        assert BlogService.migrate_legacy_status() == ["legacy"]
        assert BlogPost.objects.get(slug="legacy").status == BlogPost.Status.PUBLISHED
        assert BlogService.migrate_legacy_status() == []
        assert visible_slugs() == {"legacy"}
