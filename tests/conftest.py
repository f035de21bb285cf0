import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("DEVICE_HASH_SALT", "test-device-salt")
os.environ.setdefault("PERSPECTIVE_API_KEY", "test-perspective-key")

import pytest


class FakeScorer:
    """Returns a fixed verdict and records every text it was asked to score."""

    def __init__(self, verdict):
        self.verdict = verdict
        self.calls = []

    async def score(self, text):
        self.calls.append(text)
        return self.verdict


@pytest.fixture
def db():
    from app.core.database import Base, SessionLocal, engine
    from app import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def menu_item(db):
    from app.models.menu_item import MenuItem

    item = MenuItem(
        id="item-1",
        date="2026-10-19",
        meal_period="lunch",
        station="Grill",
        item_name="Cheeseburger",
        calories=650,
        allergens=["dairy", "gluten"],
    )
    db.add(item)
    db.commit()
    return item


@pytest.fixture
def hasher():
    from app.core.device_identity import DeviceHasher
    return DeviceHasher("test-device-salt")


def make_verdict(action, scores=None, reason=""):
    from app.schemas.moderation import ModerationAction, ModerationVerdict
    return ModerationVerdict(action=ModerationAction(action), scores=scores or {}, reason=reason)
