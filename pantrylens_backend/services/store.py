"""Keyed storage for inventory records.

Two interchangeable backends are provided: an in-memory store used by default
and a SQLAlchemy store used when ``DATABASE_URL`` is configured. Request
handlers receive the active store through ``app.extensions`` rather than a
module-level instance.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from pantrylens_backend.models import InventoryItemRecord, Location

logger = logging.getLogger(__name__)

DEFAULT_QUANTITY = "1"

UPDATABLE_FIELDS = frozenset(
    {"name", "location", "quantity", "unit", "confidence", "image_url", "expiry_date"}
)


class ItemStoreError(RuntimeError):
    """Raised when the backing store cannot complete an operation."""


@dataclass(slots=True)
class InventoryItem:
    """A stored inventory record."""

    id: int
    name: str
    location: Location
    quantity: str
    unit: str
    confidence: int | None
    image_url: str | None
    added_date: datetime
    expiry_date: datetime | None

    def to_json(self) -> dict[str, Any]:
        """Return the camelCase JSON shape used by the HTTP API."""

        return {
            "id": self.id,
            "name": self.name,
            "location": self.location.value,
            "quantity": self.quantity,
            "unit": self.unit,
            "confidence": self.confidence,
            "imageUrl": self.image_url,
            "addedDate": self.added_date.isoformat(),
            "expiryDate": self.expiry_date.isoformat() if self.expiry_date else None,
        }


def name_key(name: str) -> str:
    """Return the case-insensitive matching key for an item name."""

    return name.strip().lower()


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so they compare with aware ones."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"unknown inventory fields: {', '.join(sorted(unknown))}")


def _normalize_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce caller-provided values into their stored representation."""

    _check_fields(fields)
    normalized = dict(fields)
    if "location" in normalized:
        normalized["location"] = Location(normalized["location"])
    if "unit" in normalized and normalized["unit"] is None:
        normalized["unit"] = ""
    if "expiry_date" in normalized:
        normalized["expiry_date"] = as_utc(normalized["expiry_date"])
    return normalized


def _creation_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    normalized = _normalize_fields(fields)
    if not normalized.get("name"):
        raise ValueError("name is required")
    if "location" not in normalized:
        raise ValueError("location is required")
    return {
        "name": normalized["name"],
        "location": normalized["location"],
        "quantity": normalized.get("quantity") or DEFAULT_QUANTITY,
        "unit": normalized.get("unit") or "",
        "confidence": normalized.get("confidence"),
        "image_url": normalized.get("image_url"),
        "expiry_date": normalized.get("expiry_date"),
    }


def _sort_by_expiry(
    items: list[InventoryItem], within: timedelta, now: datetime | None
) -> list[InventoryItem]:
    cutoff = (as_utc(now) or _utcnow()) + within
    expiring = [
        item
        for item in items
        if item.expiry_date is not None and item.expiry_date <= cutoff
    ]
    expiring.sort(key=lambda item: (item.expiry_date, item.id))
    return expiring


class ItemStore(ABC):
    """Operations every inventory backend supports.

    ``mutation_lock`` is re-entrant so callers that need a read-then-write
    sequence to be atomic (the reconciler) can hold it across several calls.
    """

    def __init__(self) -> None:
        self.mutation_lock = threading.RLock()

    @abstractmethod
    def list(self) -> list[InventoryItem]: ...

    @abstractmethod
    def list_by_location(self, location: Location | str) -> list[InventoryItem]: ...

    @abstractmethod
    def get_by_id(self, item_id: int) -> InventoryItem | None: ...

    @abstractmethod
    def get_by_name(
        self, name: str, *, location: Location | str | None = None
    ) -> InventoryItem | None: ...

    @abstractmethod
    def create(self, fields: Mapping[str, Any]) -> InventoryItem: ...

    @abstractmethod
    def update(
        self, item_id: int, fields: Mapping[str, Any]
    ) -> InventoryItem | None: ...

    @abstractmethod
    def delete(self, item_id: int) -> bool: ...

    def list_expiring(
        self, within: timedelta, *, now: datetime | None = None
    ) -> list[InventoryItem]:
        """Return items whose expiry falls on or before ``now + within``."""

        return _sort_by_expiry(self.list(), within, now)


class MemoryItemStore(ItemStore):
    """Process-local store; contents are lost on restart."""

    def __init__(self) -> None:
        super().__init__()
        self._items: dict[int, InventoryItem] = {}
        self._next_id = 1

    def list(self) -> list[InventoryItem]:
        with self.mutation_lock:
            return [dataclasses.replace(item) for item in self._items.values()]

    def list_by_location(self, location: Location | str) -> list[InventoryItem]:
        wanted = Location(location)
        return [item for item in self.list() if item.location is wanted]

    def get_by_id(self, item_id: int) -> InventoryItem | None:
        with self.mutation_lock:
            item = self._items.get(item_id)
            return dataclasses.replace(item) if item else None

    def get_by_name(
        self, name: str, *, location: Location | str | None = None
    ) -> InventoryItem | None:
        key = name_key(name)
        wanted = Location(location) if location is not None else None
        for item in self.list():
            if name_key(item.name) != key:
                continue
            if wanted is not None and item.location is not wanted:
                continue
            return item
        return None

    def create(self, fields: Mapping[str, Any]) -> InventoryItem:
        values = _creation_fields(fields)
        with self.mutation_lock:
            item = InventoryItem(
                id=self._next_id,
                added_date=_utcnow(),
                **values,
            )
            self._next_id += 1
            self._items[item.id] = item
        return dataclasses.replace(item)

    def update(
        self, item_id: int, fields: Mapping[str, Any]
    ) -> InventoryItem | None:
        changes = _normalize_fields(fields)
        with self.mutation_lock:
            existing = self._items.get(item_id)
            if existing is None:
                return None
            updated = dataclasses.replace(existing, **changes)
            self._items[item_id] = updated
        return dataclasses.replace(updated)

    def delete(self, item_id: int) -> bool:
        with self.mutation_lock:
            return self._items.pop(item_id, None) is not None


def _record_to_item(record: InventoryItemRecord) -> InventoryItem:
    return InventoryItem(
        id=record.id,
        name=record.name,
        location=Location(record.location),
        quantity=record.quantity,
        unit=record.unit or "",
        confidence=record.confidence,
        image_url=record.image_url,
        added_date=as_utc(record.added_date),
        expiry_date=as_utc(record.expiry_date),
    )


def _column_values(values: Mapping[str, Any]) -> dict[str, Any]:
    columns = dict(values)
    if "location" in columns:
        columns["location"] = columns["location"].value
    return columns


class SqlItemStore(ItemStore):
    """Store backed by the ``inventory_items`` table."""

    def __init__(self, session_factory: sessionmaker) -> None:
        super().__init__()
        self._session_factory = session_factory

    def list(self) -> list[InventoryItem]:
        query = select(InventoryItemRecord).order_by(InventoryItemRecord.id)
        return self._fetch_all(query, "failed to list inventory items")

    def list_by_location(self, location: Location | str) -> list[InventoryItem]:
        query = (
            select(InventoryItemRecord)
            .where(InventoryItemRecord.location == Location(location).value)
            .order_by(InventoryItemRecord.id)
        )
        return self._fetch_all(query, "failed to list inventory items")

    def get_by_id(self, item_id: int) -> InventoryItem | None:
        try:
            with self._session_factory() as session:
                record = session.get(InventoryItemRecord, item_id)
                return _record_to_item(record) if record else None
        except SQLAlchemyError as exc:
            logger.exception("failed to load inventory item %s", item_id)
            raise ItemStoreError("failed to load inventory item") from exc

    def get_by_name(
        self, name: str, *, location: Location | str | None = None
    ) -> InventoryItem | None:
        query = select(InventoryItemRecord).where(
            func.lower(func.trim(InventoryItemRecord.name)) == name_key(name)
        )
        if location is not None:
            query = query.where(
                InventoryItemRecord.location == Location(location).value
            )
        query = query.order_by(InventoryItemRecord.id).limit(1)
        matches = self._fetch_all(query, "failed to look up inventory item")
        return matches[0] if matches else None

    def create(self, fields: Mapping[str, Any]) -> InventoryItem:
        values = _column_values(_creation_fields(fields))
        with self.mutation_lock:
            try:
                with self._session_factory() as session:
                    record = InventoryItemRecord(added_date=_utcnow(), **values)
                    session.add(record)
                    session.commit()
                    return _record_to_item(record)
            except SQLAlchemyError as exc:
                logger.exception("failed to create inventory item")
                raise ItemStoreError("failed to create inventory item") from exc

    def update(
        self, item_id: int, fields: Mapping[str, Any]
    ) -> InventoryItem | None:
        changes = _column_values(_normalize_fields(fields))
        with self.mutation_lock:
            try:
                with self._session_factory() as session:
                    record = session.get(InventoryItemRecord, item_id)
                    if record is None:
                        return None
                    for key, value in changes.items():
                        setattr(record, key, value)
                    session.commit()
                    return _record_to_item(record)
            except SQLAlchemyError as exc:
                logger.exception("failed to update inventory item %s", item_id)
                raise ItemStoreError("failed to update inventory item") from exc

    def delete(self, item_id: int) -> bool:
        with self.mutation_lock:
            try:
                with self._session_factory() as session:
                    record = session.get(InventoryItemRecord, item_id)
                    if record is None:
                        return False
                    session.delete(record)
                    session.commit()
                    return True
            except SQLAlchemyError as exc:
                logger.exception("failed to delete inventory item %s", item_id)
                raise ItemStoreError("failed to delete inventory item") from exc

    def _fetch_all(self, query, error_message: str) -> list[InventoryItem]:
        try:
            with self._session_factory() as session:
                records = session.execute(query).scalars().all()
                return [_record_to_item(record) for record in records]
        except SQLAlchemyError as exc:
            logger.exception(error_message)
            raise ItemStoreError(error_message) from exc
