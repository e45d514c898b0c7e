from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from backend.services.stock import is_low_stock, stock_value


class IngredientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    unit: str = Field(default="unit", min_length=1, max_length=20)
    quantity: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    minimum_quantity: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    last_restock_date: date | None = None


class IngredientUpdate(BaseModel):
    """Métadonnées uniquement : quantity ne bouge que via les pullouts."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    unit: str | None = Field(default=None, min_length=1, max_length=20)
    minimum_quantity: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    unit_cost: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    last_restock_date: date | None = None

    class Config:
        extra = "forbid"


class IngredientRead(BaseModel):
    id: int
    name: str
    unit: str
    quantity: Decimal
    minimum_quantity: Decimal
    unit_cost: Decimal
    last_restock_date: date | None = None
    is_low_stock: bool
    stock_value: Decimal

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, ing) -> "IngredientRead":
        return cls(
            id=ing.id,
            name=ing.name,
            unit=ing.unit,
            quantity=ing.quantity,
            minimum_quantity=ing.minimum_quantity,
            unit_cost=ing.unit_cost,
            last_restock_date=ing.last_restock_date,
            is_low_stock=is_low_stock(ing),
            stock_value=stock_value(ing),
        )
