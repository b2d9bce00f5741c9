"""ORM models for the review kernel."""

from review_kernel.models.request import LegalReviewRequestModel

__all__ = [
    "LegalReviewRequestModel",
]
