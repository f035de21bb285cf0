import base64
import binascii
import logging
from typing import Dict, Optional

from fastapi import HTTPException, status, Request

from app.core.config import settings
from app.core.device_identity import DeviceHasher
from app.core.moderation_config import get_moderation_section
from app.schemas.moderation import ModerationAction
from app.services.moderation_cache import CachedToxicityScorer, ModerationCache
from app.services.toxicity_scorer import DEFAULT_CATEGORIES, PerspectiveToxicityScorer

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

_hasher: Optional[DeviceHasher] = None
_cache: Optional[ModerationCache] = None
_scorer: Optional[CachedToxicityScorer] = None


def decode_header_value(value: str) -> str:
    if not value:
        return ""
    if value.startswith("base64:"):
        encoded = value[7:]
        try:
            return base64.b64decode(encoded).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return value
    return value


async def get_optional_user(request: Request) -> Optional[Dict]:
    """
    User context forwarded by the API gateway, or None for anonymous callers.
    The gateway validates the session and passes the user via headers.
    """
    user_id = decode_header_value(request.headers.get("X-User-Id", ""))
    if not user_id:
        return None
    return {
        "id": user_id,
        "email": decode_header_value(request.headers.get("X-User-Email", "")),
        "role": decode_header_value(request.headers.get("X-User-Role", "")),
    }


async def get_current_admin(request: Request) -> Dict:
    user = await get_optional_user(request)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user["role"].lower() != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user


def get_device_hasher() -> DeviceHasher:
    global _hasher
    if _hasher is None:
        _hasher = DeviceHasher(settings.DEVICE_HASH_SALT)
        logger.info("DeviceHasher initialized")
    return _hasher


def get_moderation_cache() -> ModerationCache:
    global _cache
    if _cache is None:
        cache_config = get_moderation_section().get("cache", {})
        _cache = ModerationCache(
            ttl_seconds=cache_config.get("ttl_seconds", 300),
            sweep_threshold=cache_config.get("sweep_threshold", 1000),
        )
    return _cache


def build_toxicity_scorer(moderation_config: Dict) -> PerspectiveToxicityScorer:
    thresholds = moderation_config.get("thresholds", {})
    failure_action = moderation_config.get("network_failure_action", "shadow")
    return PerspectiveToxicityScorer(
        api_key=settings.PERSPECTIVE_API_KEY,
        base_url=settings.PERSPECTIVE_API_URL,
        timeout=settings.HTTP_TIMEOUT,
        reject_threshold=thresholds.get("reject", 0.85),
        shadow_threshold=thresholds.get("shadow", 0.6),
        categories=moderation_config.get("categories") or DEFAULT_CATEGORIES,
        languages=moderation_config.get("languages") or ("en",),
        network_failure_action=(
            ModerationAction.APPROVED if failure_action == "approve" else ModerationAction.SHADOWED
        ),
    )


def get_toxicity_scorer() -> CachedToxicityScorer:
    global _scorer
    if _scorer is None:
        _scorer = CachedToxicityScorer(
            build_toxicity_scorer(get_moderation_section()),
            get_moderation_cache(),
        )
        logger.info("Toxicity scorer initialized")
    return _scorer


def get_auto_ban_hours() -> float:
    return get_moderation_section().get("bans", {}).get("auto_ban_hours", 24)


def get_admin_ban_days() -> float:
    return get_moderation_section().get("bans", {}).get("admin_ban_days", 7)
