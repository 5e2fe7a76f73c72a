"""SQLAlchemy models for database tables.

Provides the ORM model of the product cache.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column, DateTime, String

from storefront_catalog.infrastructure.database import Base


class ProductCacheEntry(Base):
    """Cached product document.

    Keyed by the entity key (``"sku/<sku>"`` or ``"id/<id>"``); the
    document is stored exactly as serialized by ``Product.to_document``.
    """

    __tablename__ = "product_cache"

    key = Column(String(255), primary_key=True)
    document = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "key": self.key,
            "document": self.document,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
