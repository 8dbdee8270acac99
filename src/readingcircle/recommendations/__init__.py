"""Recommendations and recommendation requests between circle members."""

from .manager import RecommendationManager, visible_requests_filter
from .models import Recommendation, RecommendationRequest
from .schemas import (
    RecommendationCreate,
    RecommendationResponse,
    RecommendationStatus,
    RequestCreate,
    RequestResponse,
    RequestStatus,
)

__all__ = [
    "RecommendationManager",
    "visible_requests_filter",
    "Recommendation",
    "RecommendationRequest",
    "RecommendationCreate",
    "RecommendationResponse",
    "RecommendationStatus",
    "RequestCreate",
    "RequestResponse",
    "RequestStatus",
]
