from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from toolhub.models.base import Base


class AppRow(Base):
    """
    One catalog entry.

    `tags` and `feedback` are stored as JSON documents; the feedback log is
    rewritten as a whole on every append.
    """

    __tablename__ = "catalog_apps"

    id = Column(String(200), primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    category = Column(String(50), nullable=False, index=True)
    store = Column(String(100), nullable=False, default="Main", index=True)

    # Use variant for SQLite compatibility
    tags = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    description = Column(Text, nullable=False, default="")
    download_url = Column(String(1000), nullable=False)
    update_info = Column(Text, nullable=False, default="")

    downloads = Column(Integer, nullable=False, default=0)
    rating = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)
    feedback = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)

    last_updated = Column(DateTime(timezone=True), nullable=False)
