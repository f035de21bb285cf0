import uuid
from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, func
from app.core.database import Base


class MenuItem(Base):
    """Daily menu entry written by the scraper job; read-only for this service."""

    __tablename__ = "menu_items"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    date = Column(String, nullable=False, index=True)  # YYYY-MM-DD
    meal_period = Column(String, nullable=False)  # breakfast | lunch | dinner
    station = Column(String, nullable=False)
    item_name = Column(Text, nullable=False)
    calories = Column(Integer, nullable=True)
    allergens = Column(JSON, nullable=False, default=list)
    source_url = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
