from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from shopcore.db import Base

# *_json columns hold raw JSON text; decoding (and tolerance of bad rows)
# belongs to the code that reads them


class ShippingZone(Base):
    __tablename__ = "shipping_zones"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String(128), nullable=False)
    countries_json = Column(Text, nullable=False, default="[]")
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    methods = relationship(
        "ShippingMethod", back_populates="zone", cascade="all, delete-orphan"
    )


class ShippingMethod(Base):
    __tablename__ = "shipping_methods"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    zone_id = Column(
        String(36), ForeignKey("shipping_zones.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # logical link to shipping_providers.key, not enforced here
    provider_key = Column(String(64), nullable=False)
    service_code = Column(String(64), nullable=False)
    title = Column(String(256), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    pricing_mode = Column(String(16), nullable=False, default="fixed")  # fixed, table, provider
    pricing_rules_json = Column(Text, nullable=False, default="{}")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    zone = relationship("ShippingZone", back_populates="methods")


class ShippingProvider(Base):
    __tablename__ = "shipping_providers"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    key = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(128), nullable=False)
    enabled = Column(Boolean, nullable=False, default=False)
    mode = Column(String(16), nullable=False, default="sandbox")  # sandbox, live
    config_json = Column(Text, nullable=False, default="{}")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class ShippingTerminalCache(Base):
    __tablename__ = "shipping_terminals_cache"
    provider_key = Column(String(64), primary_key=True)
    country = Column(String(2), primary_key=True)
    payload_json = Column(Text, nullable=False, default="[]")
    fetched_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
