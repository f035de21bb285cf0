from slowapi import Limiter, _rate_limit_exceeded_handler

from app.core.device_identity import get_client_ip
from app.core.moderation_config import load_moderation_config

config = load_moderation_config().get("rate_limit", {})
limiter = Limiter(key_func=get_client_ip, enabled=config.get("enabled", True))
rate_limit_handler = _rate_limit_exceeded_handler
