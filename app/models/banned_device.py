import uuid
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text, func
from app.core.database import Base


class BannedDevice(Base):
    """One row per banned device hash.

    ``expires_at`` NULL means permanent. Re-bans update the row in place and
    increment ``strikes``; unban deletes the row.
    """

    __tablename__ = "banned_devices"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    device_id_hash = Column(String, unique=True, nullable=False, index=True)
    reason = Column(Text, nullable=False)
    strikes = Column(Integer, nullable=False, default=1)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("strikes >= 1", name="ck_banned_devices_strikes_positive"),
    )
