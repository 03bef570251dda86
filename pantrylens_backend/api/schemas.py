"""Request bodies accepted by the inventory endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from pantrylens_backend.models import Location
from pantrylens_backend.services.inventory import parse_quantity

_NON_NULLABLE_UPDATE_FIELDS = ("name", "location", "quantity")


class _ItemFields(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    quantity: str = "1"
    unit: str = ""
    confidence: Optional[int] = Field(None, ge=0, le=100)
    image_url: Optional[str] = None
    expiry_date: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("name cannot be blank")
        return value

    @field_validator("quantity", mode="before")
    @classmethod
    def _stringify_quantity(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("quantity")
    @classmethod
    def _non_negative_quantity(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        amount = parse_quantity(value)
        if amount is not None and amount < Decimal(0):
            raise ValueError("quantity cannot be negative")
        return value

    @field_validator("unit", mode="before")
    @classmethod
    def _empty_unit(cls, value: Any) -> Any:
        return "" if value is None else value


class BatchItem(_ItemFields):
    """A staged item (usually from recognition) added to a known location."""


class InventoryItemCreate(_ItemFields):
    """Fields accepted when adding an inventory item."""

    location: Location

    def to_store_fields(self) -> dict[str, Any]:
        return self.model_dump()


class InventoryItemUpdate(InventoryItemCreate):
    """Partial update; only fields present in the body are applied."""

    name: Optional[str] = None
    location: Optional[Location] = None
    quantity: Optional[str] = None
    unit: Optional[str] = None

    @model_validator(mode="after")
    def _reject_null_required_fields(self) -> "InventoryItemUpdate":
        for field_name in _NON_NULLABLE_UPDATE_FIELDS:
            if field_name in self.model_fields_set and getattr(self, field_name) is None:
                raise ValueError(f"{to_camel(field_name)} cannot be null")
        return self

    def to_store_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class BatchAddRequest(BaseModel):
    """Several staged items destined for the same location."""

    location: Location
    items: list[BatchItem] = Field(..., min_length=1)


def format_validation_error(exc: ValidationError) -> str:
    """Render a pydantic error as a single human-readable sentence."""

    messages = []
    for error in exc.errors():
        message = error.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location}: {message}" if location else message)
    return "Validation error: " + "; ".join(messages)
