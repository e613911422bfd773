"""Pydantic schemas for the storefront API.

Define the structure of input and output data for Ninja API endpoints.
All request/response shapes used by the REST API are declared here;
Field descriptions are exposed in the OpenAPI schema for interactive docs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BaseSchema(BaseModel):
    """Base schema with ORM/Django model support.

    Enables population from Django model instances via from_attributes.
    """

    model_config = ConfigDict(from_attributes=True)


class CommonResponse(BaseModel):
    """Generic success/failure envelope used for errors and confirmations."""

    success: bool = Field(..., description="True if the operation succeeded.")
    message: str = Field("", description="Human-readable outcome.")
    data: dict[str, Any] | None = Field(None, description="Optional structured details.")


class PaginationSchema(BaseSchema):
    """Offset pagination metadata."""

    page: int = Field(..., description="1-based page number.")
    limit: int = Field(..., description="Page size.")
    total: int = Field(..., description="Number of matching records.")
    total_pages: int = Field(..., description="ceil(total / limit).")
    has_more: bool = Field(..., description="True if later pages exist.")


# --- Bonus ledger ---

class PublicBonusAccountSchema(BaseSchema):
    """Bonus balance as shown to an anonymous caller (no customer name).

    phone_number is the stored display form, whatever format was used for lookup.
    """

    phone_number: str = Field(..., description="Stored display phone, e.g. '+7 (777) 123-45-67'.")
    available_bonuses: int = Field(..., description="Bonuses that can be spent.")
    total_bonuses: int = Field(..., description="Bonuses ever credited.")
    used_bonuses: int = Field(..., description="Bonuses already spent.")
    last_updated: datetime = Field(..., description="Last balance change.")


class BonusAccountSchema(PublicBonusAccountSchema):
    """Full snapshot of a customer's bonus account for the back-office."""

    full_name: str | None = Field(None, description="Customer name, if known.")


class BonusNameUpdateSchema(BaseModel):
    """Request body for renaming the holder of a bonus account."""

    phone_number: str = Field("", description="Phone in any format; matched by digits.")
    full_name: str = Field("", description="New full name; must not be blank.")


class BonusAdjustSchema(BaseModel):
    """Request body for crediting or deducting bonuses."""

    phone_number: str = Field("", description="Phone in any format; matched by digits.")
    amount: int = Field(..., description="Number of bonuses. Credit accepts 0, deduct requires > 0.")
    full_name: str | None = Field(None, description="Credit only: name for a new account or one without a name.")


class PublicPendingBonusSchema(BaseSchema):
    """Deferred bonus waiting for its availability date."""

    id: int
    phone_number: str
    sale_reference: str = Field(..., description="Sale that produced the bonus.")
    bonus_amount: int
    available_at: datetime = Field(..., description="When the bonus becomes creditable.")
    is_processed: bool


class PendingBonusSchema(PublicPendingBonusSchema):
    full_name: str | None = None


class PublicPendingSummarySchema(BaseSchema):
    """Unprocessed pending bonuses of one customer."""

    available: List[PublicPendingBonusSchema] = Field(default_factory=list, description="Due, not yet credited.")
    upcoming: List[PublicPendingBonusSchema] = Field(default_factory=list, description="Not yet due.")
    total_available: int = 0
    total_upcoming: int = 0


class PendingSummarySchema(PublicPendingSummarySchema):
    """Back-office variant that includes customer names."""

    available: List[PendingBonusSchema] = Field(default_factory=list, description="Due, not yet credited.")
    upcoming: List[PendingBonusSchema] = Field(default_factory=list, description="Not yet due.")


class PendingStatsSchema(BaseModel):
    """Counts and amounts over all pending bonuses."""

    total_pending: int = Field(..., description="Unprocessed bonuses.")
    total_processed: int = Field(..., description="Bonuses already credited.")
    ready_for_processing: int = Field(..., description="Unprocessed bonuses whose date has passed.")
    total_pending_amount: int = Field(..., description="Sum of unprocessed bonus amounts.")
    ready_amount: int = Field(..., description="Sum of amounts ready for processing.")


class PendingCustomerBonusSchema(BaseModel):
    sale_reference: str
    bonus_amount: int
    available_at: datetime
    is_ready: bool = Field(..., description="True if the availability date has passed.")


class PendingCustomerSchema(BaseModel):
    """Unprocessed bonuses of one customer (grouped by normalized phone)."""

    phone_number: str
    full_name: str | None = None
    total_bonuses: int
    total_purchases: int = Field(..., description="Number of sales with an unprocessed bonus.")
    bonuses: List[PendingCustomerBonusSchema] = Field(default_factory=list)


class PendingStatsResponseSchema(BaseModel):
    stats: PendingStatsSchema
    pending_customers: List[PendingCustomerSchema] = Field(default_factory=list)


class ProcessedBonusSchema(BaseModel):
    phone_number: str
    bonus_amount: int
    sale_reference: str


class PendingProcessResultSchema(BaseModel):
    """Outcome of crediting due pending bonuses."""

    processed_count: int
    processed: List[ProcessedBonusSchema] = Field(default_factory=list)
    failed: List[dict[str, Any]] = Field(default_factory=list, description="Bonuses left unprocessed, with reason.")


# --- Reviews ---

class ReviewSchema(BaseSchema):
    """Full review as seen by moderators."""

    id: int
    phone: str
    content: str
    status: str = Field(..., description="pending, approved or rejected.")
    created_at: datetime
    reviewed_at: datetime | None = Field(None, description="Set when moderated; null while pending.")


class PublicReviewSchema(BaseSchema):
    """Approved review as shown on the site (no phone)."""

    id: int
    content: str
    created_at: datetime


class ReviewCreateSchema(BaseModel):
    """Request body for submitting a review."""

    phone: str = Field("", description="Contact phone; digits, spaces, dashes, parentheses, optional +.")
    content: str = Field("", description="Review text, 10 to 1000 characters.")


class ReviewCreatedSchema(BaseModel):
    message: str
    review_id: int


class ReviewModerateSchema(BaseModel):
    """Request body for a moderation decision."""

    status: str = Field(..., description='"approved" or "rejected".')


class ReviewModeratedSchema(BaseSchema):
    message: str
    review: ReviewSchema


class AdminReviewPageSchema(BaseSchema):
    """Back-office review page with the pending badge count."""

    reviews: List[ReviewSchema]
    pending_count: int = Field(..., description="Pending reviews, regardless of the active filter.")
    pagination: PaginationSchema


class PublicReviewPageSchema(BaseSchema):
    reviews: List[PublicReviewSchema]
    pagination: PaginationSchema


# --- Blog ---

class BlogPostSummarySchema(BaseSchema):
    """Compact post representation for cards and related links."""

    slug: str
    title: str
    excerpt: str = ""
    preview_image: str = ""
    published_at: datetime | None = None
    reading_time: int = 1


class BlogPostSchema(BaseSchema):
    """Public blog post."""

    id: int
    slug: str = Field(..., description="Unique URL identifier.")
    title: str
    excerpt: str = ""
    content: str
    preview_image: str = ""
    tags: List[str] = Field(default_factory=list)
    category: str = ""
    author_name: str = ""
    status: str = Field(..., validation_alias="effective_status", description="draft, scheduled or published (legacy rows resolved).")
    is_featured: bool = False
    scheduled_at: datetime | None = None
    published_at: datetime | None = None
    views: int = 0
    likes: int = 0
    reading_time: int = 1
    created_at: datetime


class BlogPostDetailSchema(BlogPostSchema):
    """Post with up to three related posts."""

    related_posts: List[BlogPostSummarySchema] = Field(default_factory=list, validation_alias="related")


class BlogPostPageSchema(BaseSchema):
    posts: List[BlogPostSchema]
    pagination: PaginationSchema


class LikeResponseSchema(BaseModel):
    message: str
    likes: int = Field(..., description="Like count after this like.")


class BlogPostCreateSchema(BaseModel):
    """Request body for authoring a post."""

    slug: str
    title: str
    content: str
    excerpt: str = ""
    preview_image: str = ""
    tags: List[str] = Field(default_factory=list)
    category: str | None = None
    author_name: str | None = None
    status: Literal["draft", "scheduled", "published"] = "draft"
    is_featured: bool = False
    scheduled_at: datetime | None = None

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str) -> str:
        return v.strip().lower()


class BlogStatusSchema(BaseModel):
    """Request body for a direct status change."""

    status: str = Field(..., description="draft, scheduled or published.")
    scheduled_at: datetime | None = Field(None, description="Publication time for 'scheduled'.")
