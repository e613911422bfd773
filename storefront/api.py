"""REST API endpoints for the storefront content and loyalty workflows.

Implemented with Django Ninja. Two routers are exposed:

* `public_router`: bonus lookup, review submission and public blog listings.
  No authentication.
* `admin_router`: review moderation, bonus ledger management and blog
  administration. Requires Bearer token authentication (STOREFRONT_ADMIN_TOKEN);
  the resulting AdminContext is passed to every service call as `actor`.

Service errors are mapped to 400 (validation), 404 (not found) and 409
(conflict). Docstrings are used to generate OpenAPI descriptions.
"""

from __future__ import annotations

from typing import List

from ninja import Router

from .auth import AdminTokenAuth
from .exceptions import NotFound, StorefrontError, ValidationFailed
from .schemas import (
    AdminReviewPageSchema,
    BlogPostCreateSchema,
    BlogPostDetailSchema,
    BlogPostPageSchema,
    BlogPostSchema,
    BlogStatusSchema,
    BonusAccountSchema,
    BonusAdjustSchema,
    BonusNameUpdateSchema,
    CommonResponse,
    LikeResponseSchema,
    PendingProcessResultSchema,
    PendingStatsResponseSchema,
    PendingSummarySchema,
    PublicBonusAccountSchema,
    PublicPendingSummarySchema,
    PublicReviewPageSchema,
    ReviewCreateSchema,
    ReviewCreatedSchema,
    ReviewModeratedSchema,
    ReviewModerateSchema,
)
from .services import BlogService, BonusService, ReviewService

ERRORS = {400: CommonResponse, 404: CommonResponse, 409: CommonResponse}

public_router = Router(tags=["storefront"])

# Router for back-office operations with mandatory authorization
admin_router = Router(tags=["admin"], auth=AdminTokenAuth())


def error_response(exc: StorefrontError) -> tuple[int, dict]:
    """Map a service error to (status code, CommonResponse body)."""
    if isinstance(exc, ValidationFailed):
        status = 400
    elif isinstance(exc, NotFound):
        status = 404
    else:
        status = 409
    return status, {
        "success": False,
        "message": exc.message,
        "data": {"code": exc.code, **exc.data},
    }


# --- Bonus Endpoints ---

@public_router.get("/bonuses", response={200: PublicBonusAccountSchema, **ERRORS})
async def aget_bonus_account(request, phone: str = ""):
    """Get a customer's bonus balance by phone.

    Query param: phone: any format; matched by digits only, so
    "+7 (777) 123-45-67" and "77771234567" find the same account.
    Returns 404 if no account matches and 409 if several do.
    """
    try:
        return await BonusService.aget_account(phone)
    except StorefrontError as exc:
        return error_response(exc)


@public_router.get("/bonuses/pending", response={200: PublicPendingSummarySchema, **ERRORS})
async def aget_pending_bonuses(request, phone: str = ""):
    """List a customer's pending bonuses, split into available and upcoming.

    Query param: phone: any format; matched by digits only.
    """
    try:
        return await BonusService.apending_summary(phone)
    except StorefrontError as exc:
        return error_response(exc)


# --- Review Endpoints ---

@public_router.post("/reviews", response={201: ReviewCreatedSchema, **ERRORS})
async def asubmit_review(request, data: ReviewCreateSchema):
    """Submit a review. It stays hidden until a moderator approves it.

    Request body: phone, content (10 to 1000 characters).
    """
    try:
        review = await ReviewService.asubmit(data.phone, data.content)
    except StorefrontError as exc:
        return error_response(exc)
    return 201, {"message": "Review submitted and awaiting moderation", "review_id": review.pk}


@public_router.get("/reviews", response={200: PublicReviewPageSchema, **ERRORS})
async def alist_approved_reviews(request, page: int = 1, limit: int | None = None):
    """Approved reviews, newest first, with pagination metadata."""
    try:
        return await ReviewService.alist_approved(page=page, limit=limit)
    except StorefrontError as exc:
        return error_response(exc)


# --- Blog Endpoints ---

@public_router.get("/blog", response={200: BlogPostPageSchema, **ERRORS})
async def alist_blog_posts(
    request,
    page: int = 1,
    limit: int = 12,
    search: str | None = None,
    category: str | None = None,
    tags: str | None = None,
    sort_by: str = "published_at",
    sort_order: str = "desc",
    featured: bool | None = None,
):
    """Public blog listing with filters and pagination.

    Query params: page, limit, search (title/excerpt/content), category,
    tags (comma-separated, any match), sort_by (published_at, views, likes,
    created_at), sort_order (asc, desc), featured.
    Scheduled posts whose time has come are published first.
    """
    tag_list = [tag for tag in (tags or "").split(",") if tag.strip()]
    try:
        return await BlogService.alist_posts(
            page=page,
            limit=limit,
            search=search,
            category=category,
            tags=tag_list,
            sort_by=sort_by,
            sort_order=sort_order,
            featured=featured,
        )
    except StorefrontError as exc:
        return error_response(exc)


@public_router.get("/blog/popular", response=List[BlogPostSchema])
async def alist_popular_posts(request, limit: int | None = None):
    """Most viewed posts (ties broken by likes).

    Query param: limit: default 10, never more than 20.
    Scheduled posts whose time has come are published first.
    """
    return await BlogService.apopular(limit)


@public_router.get("/blog/featured", response=List[BlogPostSchema])
async def alist_featured_posts(request, limit: int | None = None):
    """Featured posts, newest publication first.

    Query param: limit: default 3, never more than 10.
    """
    return await BlogService.afeatured(limit)


@public_router.get("/blog/latest", response=List[BlogPostSchema])
async def alist_latest_posts(request, limit: int | None = None):
    """Most recently published posts. Query param: limit: default 10, at most 20."""
    return await BlogService.alatest(limit)


@public_router.get("/blog/{slug}", response={200: BlogPostDetailSchema, **ERRORS})
async def aget_blog_post(request, slug: str, increment_views: bool = True):
    """Get a published post by slug with up to three related posts.

    Query param: increment_views: set to false to read without counting a view.
    Returns 404 if the post does not exist or is not published.
    """
    try:
        return await BlogService.aget_post(slug, increment_views=increment_views)
    except StorefrontError as exc:
        return error_response(exc)


@public_router.post("/blog/{slug}/like", response={200: LikeResponseSchema, **ERRORS})
async def alike_blog_post(request, slug: str):
    """Add a like to a published post and return the new like count."""
    try:
        likes = await BlogService.alike(slug)
    except StorefrontError as exc:
        return error_response(exc)
    return {"message": "Like added successfully", "likes": likes}


# --- Admin: Reviews ---

@admin_router.get("/reviews", response={200: AdminReviewPageSchema, **ERRORS})
async def alist_reviews_for_admin(request, status: str | None = None, page: int = 1, limit: int | None = None):
    """List reviews for moderation, newest first.

    Query params: status (pending, approved, rejected; omit for all), page, limit.
    pending_count is always the number of pending reviews, whatever the filter.
    """
    try:
        return await ReviewService.alist_for_admin(status=status, page=page, limit=limit)
    except StorefrontError as exc:
        return error_response(exc)


@admin_router.put("/reviews/{review_id}", response={200: ReviewModeratedSchema, **ERRORS})
async def amoderate_review(request, review_id: int, data: ReviewModerateSchema):
    """Approve or reject a review.

    Request body: status: "approved" or "rejected". Any other value is
    rejected with 400 before the review is touched. Re-moderating an already
    moderated review overwrites the previous decision.
    """
    try:
        review = await ReviewService.amoderate(review_id, data.status, actor=request.auth)
    except StorefrontError as exc:
        return error_response(exc)
    message = "Review approved" if review.status == "approved" else "Review rejected"
    return {"message": message, "review": review}


@admin_router.delete("/reviews/{review_id}", response={200: CommonResponse, **ERRORS})
async def adelete_review(request, review_id: int):
    """Delete a review in any state."""
    try:
        await ReviewService.adelete(review_id, actor=request.auth)
    except StorefrontError as exc:
        return error_response(exc)
    return {"success": True, "message": "Review deleted"}


# --- Admin: Bonuses ---

@admin_router.get("/bonuses", response=List[BonusAccountSchema])
async def alist_bonus_accounts(request):
    """All bonus accounts, newest first."""
    return await BonusService.alist_accounts()


@admin_router.post("/bonuses/update-name", response={200: BonusAccountSchema, **ERRORS})
async def aupdate_bonus_name(request, data: BonusNameUpdateSchema):
    """Set the full name on a customer's bonus account.

    Request body: phone_number (any format, matched by digits), full_name.
    The response keeps the stored display phone.
    """
    try:
        return await BonusService.aupdate_name(data.phone_number, data.full_name, actor=request.auth)
    except StorefrontError as exc:
        return error_response(exc)


@admin_router.post("/bonuses/credit", response={200: BonusAccountSchema, **ERRORS})
async def acredit_bonuses(request, data: BonusAdjustSchema):
    """Add bonuses to a customer, creating the account if none matches the phone."""
    try:
        return await BonusService.acredit(
            data.phone_number,
            data.amount,
            actor=request.auth,
            full_name=data.full_name,
        )
    except StorefrontError as exc:
        return error_response(exc)


@admin_router.post("/bonuses/deduct", response={200: BonusAccountSchema, **ERRORS})
async def adeduct_bonuses(request, data: BonusAdjustSchema):
    """Spend bonuses. Returns 400 with the available amount if the balance is too low."""
    try:
        return await BonusService.adeduct(data.phone_number, data.amount, actor=request.auth)
    except StorefrontError as exc:
        return error_response(exc)


@admin_router.get("/bonuses/pending", response={200: PendingSummarySchema, **ERRORS})
async def aget_pending_bonuses_for_admin(request, phone: str = "", name: str = ""):
    """Find a customer's pending bonuses by phone or by name.

    Query params: phone (any format, matched by digits) or name
    (case-insensitive part of the full name). Phone wins if both are given.
    """
    try:
        return await BonusService.apending_summary(phone, name)
    except StorefrontError as exc:
        return error_response(exc)


@admin_router.get("/bonuses/process-pending", response=PendingStatsResponseSchema)
async def aget_pending_stats(request):
    """Pending bonus statistics and unprocessed bonuses grouped by customer."""
    return await BonusService.apending_stats()


@admin_router.post("/bonuses/process-pending", response=PendingProcessResultSchema)
async def aprocess_pending_bonuses(request):
    """Credit every pending bonus whose availability date has passed."""
    return await BonusService.aprocess_pending_bonuses()


# --- Admin: Blog ---

@admin_router.post("/blog", response={201: BlogPostSchema, **ERRORS})
async def acreate_blog_post(request, data: BlogPostCreateSchema):
    """Create a blog post. Returns 409 if the slug is taken."""
    try:
        post = await BlogService.acreate_post(data.model_dump(), actor=request.auth)
    except StorefrontError as exc:
        return error_response(exc)
    return 201, post


@admin_router.put("/blog/{slug}/status", response={200: BlogPostSchema, **ERRORS})
async def aset_blog_post_status(request, slug: str, data: BlogStatusSchema):
    """Move a post to draft, scheduled or published.

    Request body: status, scheduled_at (optional, for scheduled).
    """
    try:
        return await BlogService.aset_status(
            slug, data.status, actor=request.auth, scheduled_at=data.scheduled_at
        )
    except StorefrontError as exc:
        return error_response(exc)


@admin_router.delete("/blog/{slug}", response={200: CommonResponse, **ERRORS})
async def adelete_blog_post(request, slug: str):
    """Delete a blog post."""
    try:
        await BlogService.adelete_post(slug, actor=request.auth)
    except StorefrontError as exc:
        return error_response(exc)
    return {"success": True, "message": "Blog post deleted"}
