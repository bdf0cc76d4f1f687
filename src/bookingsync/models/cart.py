"""Cart models.

``total`` and ``item_count`` are computed from ``items`` on access, so
they can never drift from the item list.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class CartItem(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    id: str
    name: str
    price: float = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    image: str = ""
    category: str = ""
    provider_id: str | None = None

    @field_validator("id")
    @classmethod
    def _id_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("id must be non-empty")
        return value


class CartState(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: tuple[CartItem, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> float:
        return sum(item.price * item.quantity for item in self.items)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)
