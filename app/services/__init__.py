from app.services.toxicity_scorer import PerspectiveToxicityScorer
from app.services.moderation_cache import ModerationCache, CachedToxicityScorer
from app.services.ban_registry import BanRegistry
from app.services.review_intake import ReviewIntakeService
from app.services.admin_override import AdminOverrideService

__all__ = [
    "PerspectiveToxicityScorer",
    "ModerationCache",
    "CachedToxicityScorer",
    "BanRegistry",
    "ReviewIntakeService",
    "AdminOverrideService",
]
