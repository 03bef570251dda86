"""SQLAlchemy models for PantryLens."""

from __future__ import annotations

import os
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base shared by all PantryLens tables."""


class Location(str, Enum):
    """Places an inventory item can be stored."""

    FRIDGE = "Fridge"
    CABINET = "Cabinet"

    @classmethod
    def values(cls) -> set[str]:
        return {entry.value for entry in cls}


class InventoryItemRecord(Base):
    """A food item tracked in the user's fridge or cabinet."""

    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint(
            "location in ('Fridge','Cabinet')",
            name="ck_inventory_items_location",
        ),
        CheckConstraint(
            "confidence is null or (confidence >= 0 and confidence <= 100)",
            name="ck_inventory_items_confidence",
        ),
        # Ids must never be handed out twice, even after deletes.
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(16), nullable=False)
    quantity: Mapped[str] = mapped_column(String(64), nullable=False, default="1")
    unit: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    confidence: Mapped[Optional[int]] = mapped_column(Integer)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    added_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    expiry_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )


def get_database_url() -> str:
    """Return the configured DATABASE_URL."""

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL environment variable is not set")

    # Normalize common Postgres URL forms to the installed psycopg v3 driver.
    if database_url.startswith("postgres://"):
        return "postgresql+psycopg://" + database_url[len("postgres://") :]
    if database_url.startswith("postgresql://"):
        return "postgresql+psycopg://" + database_url[len("postgresql://") :]
    if database_url.startswith("postgresql+psycopg2://"):
        return (
            "postgresql+psycopg://"
            + database_url[len("postgresql+psycopg2://") :]
        )

    return database_url
