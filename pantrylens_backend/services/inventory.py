"""Helpers for adding items to the inventory without duplicating rows."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from pantrylens_backend.models import Location
from pantrylens_backend.services.store import InventoryItem, ItemStore

logger = logging.getLogger(__name__)

FRIDGE_SHELF_LIFE = timedelta(days=14)
CABINET_SHELF_LIFE = timedelta(days=180)

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))")


@dataclass(slots=True)
class ReconcileResult:
    """Outcome of adding a single candidate item."""

    item: InventoryItem
    quantity_updated: bool = False
    previous_quantity: str | None = None

    def to_json(self) -> dict[str, Any]:
        payload = self.item.to_json()
        if self.quantity_updated:
            payload["quantityUpdated"] = True
            payload["previousQuantity"] = self.previous_quantity
        return payload


@dataclass(slots=True)
class BatchAddResult:
    """Items created versus merged while adding a recognized batch."""

    new_items: list[InventoryItem] = field(default_factory=list)
    updated_items: list[ReconcileResult] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {
            "newItems": [item.to_json() for item in self.new_items],
            "updatedItems": [result.to_json() for result in self.updated_items],
        }


def parse_quantity(value: object) -> Decimal | None:
    """Return the leading decimal number in ``value``, or ``None``.

    ``"2 lbs"`` parses as 2 and ``".5"`` as 0.5. Never raises.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    elif isinstance(value, str):
        text = value
    else:
        return None

    match = _LEADING_NUMBER.match(text)
    if match is None:
        return None
    try:
        number = Decimal(match.group(1))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def format_quantity(value: Decimal) -> str:
    """Render a decimal without exponent or trailing fractional zeros."""

    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def _existing_amount(quantity: str | None) -> Decimal:
    amount = parse_quantity(quantity)
    return amount if amount is not None else Decimal(0)


def _incoming_amount(quantity: object) -> Decimal:
    if quantity is None or (isinstance(quantity, str) and not quantity.strip()):
        return Decimal(1)
    amount = parse_quantity(quantity)
    return amount if amount is not None else Decimal(0)


def sum_quantities(existing: str | None, incoming: object) -> str:
    """Add an incoming quantity to a stored one and return the new string."""

    total = _existing_amount(existing) + _incoming_amount(incoming)
    return format_quantity(max(total, Decimal(0)))


def default_expiry(location: Location | str, *, now: datetime | None = None) -> datetime:
    """Return the default best-before date for items placed in ``location``."""

    base = now or datetime.now(timezone.utc)
    if Location(location) is Location.FRIDGE:
        return base + FRIDGE_SHELF_LIFE
    return base + CABINET_SHELF_LIFE


def reconcile_item(store: ItemStore, candidate: Mapping[str, Any]) -> ReconcileResult:
    """Merge ``candidate`` into a matching record or create a new one.

    A record matches when its name is equal ignoring case and it sits in the
    same location. Only the quantity of a matched record changes.
    """

    with store.mutation_lock:
        existing = store.get_by_name(
            candidate["name"], location=candidate["location"]
        )
        if existing is not None:
            new_quantity = sum_quantities(
                existing.quantity, candidate.get("quantity")
            )
            updated = store.update(existing.id, {"quantity": new_quantity})
            if updated is not None:
                logger.info(
                    "merged inventory item %s: %s -> %s",
                    existing.id,
                    existing.quantity,
                    new_quantity,
                )
                return ReconcileResult(
                    item=updated,
                    quantity_updated=True,
                    previous_quantity=existing.quantity,
                )
            logger.warning(
                "inventory item %s vanished during merge; creating a new record",
                existing.id,
            )

        created = store.create(candidate)
    return ReconcileResult(item=created)


def add_recognized_items(
    store: ItemStore,
    location: Location | str,
    items: Iterable[Mapping[str, Any]],
    *,
    now: datetime | None = None,
) -> BatchAddResult:
    """Reconcile a batch of staged items into a single location."""

    result = BatchAddResult()
    for entry in items:
        candidate = dict(entry)
        candidate["location"] = Location(location)
        if candidate.get("expiry_date") is None:
            candidate["expiry_date"] = default_expiry(location, now=now)
        outcome = reconcile_item(store, candidate)
        if outcome.quantity_updated:
            result.updated_items.append(outcome)
        else:
            result.new_items.append(outcome.item)

    logger.info(
        "added recognized items",
        extra={
            "location": Location(location).value,
            "new_count": len(result.new_items),
            "updated_count": len(result.updated_items),
        },
    )
    return result
