"""
Validation gate : refuse un create / edit AVANT toute écriture.

Le contrôle stock utilise le même diff que la réconciliation
(signed_effect + applied_delta persisté) : réduire un pullout est
toujours possible, l'augmenter est plafonné par
    stock disponible + ce que CE pullout a déjà retiré.
Un retrait pending est plafonné de la même façon (check_capacity),
même quand la politique ne lui donne aucun effet stock.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from backend.app.db.models.models_v1 import Ingredient
from backend.app.db.models.core_types import PulloutKind
from backend.app.exceptions import InsufficientStockError, ValidationError
from backend.services.reconciliation import delta_to_apply

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def check_fields(quantity: Decimal | None, reason: str | None, date_of_pullout: date | None) -> None:
    if quantity is None:
        raise ValidationError("Quantity is required")
    if not isinstance(quantity, Decimal):
        raise ValidationError("Quantity must be a decimal value")
    if not quantity.is_finite() or quantity <= 0:
        raise ValidationError("Quantity must be greater than zero")
    if quantity != quantity.quantize(CENT):
        raise ValidationError("Quantity supports at most 2 decimal places")
    if not reason or not reason.strip():
        raise ValidationError("Reason is required")
    if date_of_pullout is None:
        raise ValidationError("Date of pullout is required")


def check_stock(ingredient: Ingredient, current_applied: Decimal, prospective_applied: Decimal) -> Decimal:
    """Retourne le delta qui sera retiré ; lève InsufficientStockError sinon."""
    delta = delta_to_apply(current_applied, prospective_applied)
    if delta > 0 and ingredient.quantity - delta < 0:
        logger.warning(
            "pullout refused by validation gate",
            extra={
                "ingredient_id": ingredient.id,
                "available": str(ingredient.quantity),
                "requested": str(delta),
            },
        )
        raise InsufficientStockError(ingredient.id, available=ingredient.quantity, requested=delta)
    return delta


def check_capacity(ingredient: Ingredient, kind: PulloutKind, quantity: Decimal, current_applied: Decimal) -> None:
    """
    Un retrait ne peut pas demander plus que le stock disponible
    + ce que CE pullout retient déjà, même s'il reste "pending".
    Les ajouts ne sont pas plafonnés.
    """
    if kind != PulloutKind.removal:
        return
    available = ingredient.quantity + max(current_applied or ZERO, ZERO)
    if quantity > available:
        logger.warning(
            "pullout refused by validation gate",
            extra={
                "ingredient_id": ingredient.id,
                "available": str(available),
                "requested": str(quantity),
            },
        )
        raise InsufficientStockError(ingredient.id, available=available, requested=quantity)
