"""
Stock store : source de vérité des quantités par ingrédient.

Règles :
    - quantity n'est jamais écrasée, seulement ajustée par delta
    - quantity >= 0 en permanence (contrôlé ici AVANT l'écriture,
      + CHECK constraint côté DB)
    - adjust_quantity est le point de sérialisation par ingrédient :
      SELECT ... FOR UPDATE en Postgres, version_id (CAS) partout
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Ingredient
from backend.app.exceptions import (
    IngredientNotFoundError,
    InsufficientStockError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Champs modifiables hors ledger (quantity exclu volontairement)
INGREDIENT_METADATA_FIELDS = {"name", "unit", "minimum_quantity", "unit_cost", "last_restock_date"}


def get_ingredient(db: Session, ingredient_id: int) -> Ingredient:
    ing = db.get(Ingredient, ingredient_id)
    if not ing:
        raise IngredientNotFoundError(ingredient_id)
    return ing


def lock_ingredient(db: Session, ingredient_id: int) -> Ingredient:
    """
    Verrouille la ligne ingrédient pour la transaction en cours.

    flush() d'abord : populate_existing recharge l'état DB, il ne doit
    pas écraser des modifications encore en mémoire.
    """
    db.flush()
    ing = (
        db.execute(
            select(Ingredient)
            .where(Ingredient.id == ingredient_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .one_or_none()
    )
    if not ing:
        raise IngredientNotFoundError(ingredient_id)
    return ing


def get_quantity(db: Session, ingredient_id: int) -> Decimal:
    return get_ingredient(db, ingredient_id).quantity


def adjust_quantity(
    db: Session,
    ingredient_id: int,
    delta: Decimal,
    *,
    allow_negative: bool = False,
) -> Decimal:
    """Applique ``delta`` (signé) au stock et retourne la nouvelle quantité."""
    ing = lock_ingredient(db, ingredient_id)

    new_quantity = ing.quantity + delta
    if new_quantity < 0 and not allow_negative:
        logger.warning(
            "stock adjustment refused",
            extra={"ingredient_id": ingredient_id, "available": str(ing.quantity), "delta": str(delta)},
        )
        raise InsufficientStockError(ingredient_id, available=ing.quantity, requested=-delta)

    ing.quantity = new_quantity
    db.flush()
    logger.debug("ingredient %s quantity %s -> %s", ingredient_id, new_quantity - delta, new_quantity)
    return new_quantity


def is_low_stock(ing: Ingredient) -> bool:
    return ing.quantity <= (ing.minimum_quantity or ZERO)


def stock_value(ing: Ingredient) -> Decimal:
    return (ing.quantity * (ing.unit_cost or ZERO)).quantize(Decimal("0.01"))


# ---------- CRUD ingrédients (hors ledger) ----------
def create_ingredient(
    db: Session,
    *,
    name: str,
    unit: str = "unit",
    quantity: Decimal = ZERO,
    minimum_quantity: Decimal = ZERO,
    unit_cost: Decimal = ZERO,
    last_restock_date: date | None = None,
) -> Ingredient:
    if not name or not name.strip():
        raise ValidationError("Ingredient name is required")
    for label, value in (("quantity", quantity), ("minimum_quantity", minimum_quantity), ("unit_cost", unit_cost)):
        if value < 0:
            raise ValidationError(f"{label} must be >= 0")

    exists = db.execute(select(Ingredient).where(Ingredient.name == name.strip())).scalar_one_or_none()
    if exists:
        raise ValidationError(f"Ingredient {name.strip()!r} already exists")

    ing = Ingredient(
        name=name.strip(),
        unit=unit,
        quantity=quantity,
        minimum_quantity=minimum_quantity,
        unit_cost=unit_cost,
        last_restock_date=last_restock_date,
    )
    db.add(ing)
    db.commit()
    db.refresh(ing)
    logger.info("ingredient created", extra={"ingredient_id": ing.id, "opening_quantity": str(quantity)})
    return ing


def update_ingredient(db: Session, ingredient_id: int, **changes) -> Ingredient:
    if "quantity" in changes:
        raise ValidationError("quantity can only change through pullouts")
    unknown = set(changes) - INGREDIENT_METADATA_FIELDS
    if unknown:
        raise ValidationError(f"Unknown ingredient fields: {sorted(unknown)}")
    for label in ("unit", "minimum_quantity", "unit_cost"):
        if label in changes and changes[label] is None:
            raise ValidationError(f"{label} cannot be null")
    for label in ("minimum_quantity", "unit_cost"):
        if label in changes and changes[label] < 0:
            raise ValidationError(f"{label} must be >= 0")

    ing = get_ingredient(db, ingredient_id)
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationError("Ingredient name is required")
        clash = db.execute(
            select(Ingredient).where(Ingredient.name == name).where(Ingredient.id != ingredient_id)
        ).scalar_one_or_none()
        if clash:
            raise ValidationError(f"Ingredient {name!r} already exists")
        changes["name"] = name

    for key, value in changes.items():
        setattr(ing, key, value)
    db.commit()
    db.refresh(ing)
    return ing


def list_ingredients(db: Session, *, low_stock_only: bool = False) -> list[Ingredient]:
    rows = db.execute(select(Ingredient).order_by(Ingredient.name)).scalars().all()
    if low_stock_only:
        return [ing for ing in rows if is_low_stock(ing)]
    return list(rows)
