import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)

_config_cache: Optional[Dict[str, Any]] = None


def load_moderation_config() -> Dict[str, Any]:
    """
    Load moderation policy configuration from YAML file.
    Caches the configuration for subsequent calls.
    """
    global _config_cache
    if _config_cache is None:
        config_file = Path(settings.MODERATION_CONFIG_PATH)
        if config_file.exists():
            try:
                with open(config_file) as f:
                    _config_cache = yaml.safe_load(f) or {}
                logger.info("Loaded moderation configuration from %s", config_file)
            except (OSError, yaml.YAMLError) as e:
                logger.error("Error loading moderation configuration: %s", e)
                _config_cache = {}
        else:
            logger.warning("Moderation configuration file not found at %s, using defaults", config_file)
            _config_cache = {}
    return _config_cache


def get_moderation_section() -> Dict[str, Any]:
    return load_moderation_config().get("moderation", {})


def get_review_rate_limit() -> str:
    rate_limit_config = load_moderation_config().get("rate_limit", {})
    if rate_limit_config.get("enabled", True):
        per_minute = rate_limit_config.get("reviews_per_minute", 10)
        return f"{per_minute}/minute"
    return "1000/minute"
