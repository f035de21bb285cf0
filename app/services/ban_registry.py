import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.core.config import ConfigurationError
from app.models.banned_device import BannedDevice

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BanRegistry:
    """Device bans keyed by device hash.

    Expiry is evaluated at query time, so expired rows need no cleanup.
    Callers are responsible for writing the matching audit event.
    """

    def __init__(self, db: Session):
        self.db = db

    def _active_filter(self, now: datetime):
        return or_(BannedDevice.expires_at.is_(None), BannedDevice.expires_at > now)

    def get(self, device_id_hash: str) -> Optional[BannedDevice]:
        return self.db.query(BannedDevice).filter(
            BannedDevice.device_id_hash == device_id_hash
        ).first()

    def get_active_ban(self, device_id_hash: str, now: Optional[datetime] = None) -> Optional[BannedDevice]:
        return self.db.query(BannedDevice).filter(
            BannedDevice.device_id_hash == device_id_hash,
            self._active_filter(now or _utcnow()),
        ).first()

    def is_banned(self, device_id_hash: str, now: Optional[datetime] = None) -> bool:
        return self.get_active_ban(device_id_hash, now) is not None

    def list_bans(self, device_id_hash: Optional[str] = None) -> List[BannedDevice]:
        query = self.db.query(BannedDevice)
        if device_id_hash:
            query = query.filter(BannedDevice.device_id_hash == device_id_hash)
        return query.order_by(BannedDevice.created_at.desc()).all()

    def ban(
        self,
        device_id_hash: str,
        reason: str,
        expires_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> BannedDevice:
        """Insert a ban, or bump strikes and refresh an existing one.

        A single INSERT ... ON CONFLICT statement, so concurrent bans of the
        same device converge on one row. Rows whose ban already expired are
        refreshed too, carrying their strike count forward.
        """
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise ConfigurationError(f"Ban upsert not supported for database dialect {dialect!r}")

        created_at = now or _utcnow()
        stmt = insert(BannedDevice).values(
            id=str(uuid4()),
            device_id_hash=device_id_hash,
            reason=reason,
            strikes=1,
            expires_at=expires_at,
            created_at=created_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[BannedDevice.device_id_hash],
            set_={
                "strikes": BannedDevice.strikes + 1,
                "reason": stmt.excluded.reason,
                "expires_at": stmt.excluded.expires_at,
                "created_at": stmt.excluded.created_at,
            },
        )
        self.db.execute(stmt)
        self.db.commit()

        banned = self.get(device_id_hash)
        logger.info(
            "Device banned hash=%s strikes=%d expires_at=%s",
            device_id_hash[:16], banned.strikes, expires_at,
        )
        return banned

    def unban(self, device_id_hash: str) -> bool:
        deleted = self.db.query(BannedDevice).filter(
            BannedDevice.device_id_hash == device_id_hash
        ).delete(synchronize_session=False)
        self.db.commit()
        if deleted:
            logger.info("Device unbanned hash=%s", device_id_hash[:16])
        return bool(deleted)
