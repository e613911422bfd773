from .bonus_service import BonusService
from .review_service import ReviewService
from .blog_service import BlogService

__all__ = [
    "BonusService",
    "ReviewService",
    "BlogService",
]
