from app.models.menu_item import MenuItem
from app.models.review import Review, ModerationStatus
from app.models.banned_device import BannedDevice
from app.models.moderation_event import (
    ModerationEvent,
    ModerationContentType,
    ModerationEventAction,
)

__all__ = [
    "MenuItem",
    "Review",
    "ModerationStatus",
    "BannedDevice",
    "ModerationEvent",
    "ModerationContentType",
    "ModerationEventAction",
]
