import pytest

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.test import RequestFactory

from storefront.admin import BlogPostAdmin, BonusAccountAdmin, ReviewAdmin
from storefront.exceptions import NotFound
from storefront.models import BlogPost, BonusAccount, Review
from storefront.services import BlogService
from storefront.signals import review_moderated

User = get_user_model()


@pytest.fixture
def staff_request(db):
    user = User.objects.create(username="moderator", is_staff=True, is_superuser=True)
    request = RequestFactory().post("/admin/")
    request.user = user
    return request


@pytest.mark.django_db
class TestReviewAdmin:
    def test_approve_action_goes_through_service(self, staff_request):
        first = Review.objects.create(phone="+7 777 123 45 67", content="First review text")
        second = Review.objects.create(phone="+7 777 123 45 67", content="Second review text")
        actors = []
        handler = lambda sender, actor, **kwargs: actors.append(str(actor))  # noqa: E731
        review_moderated.connect(handler)
        try:
            model_admin = ReviewAdmin(Review, admin.site)
            model_admin.approve_reviews(staff_request, Review.objects.filter(pk__in=[first.pk, second.pk]))
        finally:
            review_moderated.disconnect(handler)

        assert set(Review.objects.values_list("status", flat=True)) == {"approved"}
        assert actors == ["django-admin:moderator", "django-admin:moderator"]

    def test_reject_action(self, staff_request):
        review = Review.objects.create(phone="+7 777 123 45 67", content="Some review text")
        ReviewAdmin(Review, admin.site).reject_reviews(staff_request, Review.objects.all())
        review.refresh_from_db()
        assert review.status == Review.Status.REJECTED
        assert review.reviewed_at is not None

    def test_short_content(self):
        model_admin = ReviewAdmin(Review, admin.site)
        assert model_admin.short_content(Review(content="x" * 100)) == "x" * 57 + "..."


@pytest.mark.django_db
class TestBlogPostAdmin:
    def test_publish_and_draft_actions(self, staff_request):
        post = BlogPost.objects.create(slug="draft", title="Draft", content="text", status="draft")
        model_admin = BlogPostAdmin(BlogPost, admin.site)

        model_admin.publish_now(staff_request, BlogPost.objects.filter(pk=post.pk))
        post.refresh_from_db()
        assert post.is_visible()
        assert post.published_at is not None

        model_admin.make_draft(staff_request, BlogPost.objects.filter(pk=post.pk))
        post.refresh_from_db()
        assert not post.is_visible()

    def test_status_display_marks_legacy(self):
        model_admin = BlogPostAdmin(BlogPost, admin.site)
        assert model_admin.status_display(BlogPost(status=None, is_published=True)) == "published (legacy)"
        assert model_admin.status_display(BlogPost(status="scheduled")) == "scheduled"

    def test_action_message_counts_only_successes(self, staff_request, monkeypatch):
        BlogPost.objects.create(slug="ready", title="Ready", content="text", status="draft")
        BlogPost.objects.create(slug="gone", title="Gone", content="text", status="draft")
        set_status = BlogService.set_status

        def flaky_set_status(slug, status, actor, scheduled_at=None):
            if slug == "gone":
                raise NotFound("Blog post not found")
            return set_status(slug, status, actor=actor, scheduled_at=scheduled_at)

        monkeypatch.setattr(BlogService, "set_status", flaky_set_status)
        model_admin = BlogPostAdmin(BlogPost, admin.site)
        messages = []
        monkeypatch.setattr(model_admin, "message_user", lambda request, message, **kwargs: messages.append(message))

        model_admin.publish_now(staff_request, BlogPost.objects.order_by("slug"))

        assert messages == ["gone: Blog post not found", "1 post(s) set to published."]
        assert BlogPost.objects.get(slug="ready").is_visible()
        assert not BlogPost.objects.get(slug="gone").is_visible()


def test_bonus_account_digits_column():
    model_admin = BonusAccountAdmin(BonusAccount, admin.site)
    assert model_admin.normalized_phone_display(BonusAccount(phone_number="+7 (777) 123-45-67")) == "77771234567"


def test_bonus_account_check_columns():
    model_admin = BonusAccountAdmin(BonusAccount, admin.site)
    tidy = BonusAccount(phone_number="+7 (777) 123-45-67", total_bonuses=50, used_bonuses=20, available_bonuses=30)
    raw = BonusAccount(phone_number="77771234567", total_bonuses=50, used_bonuses=20, available_bonuses=25)

    assert model_admin.display_format_ok(tidy) is True
    assert model_admin.display_format_ok(raw) is False
    assert model_admin.balanced(tidy) is True
    assert model_admin.balanced(raw) is False
