"""
Moteur de réconciliation pullout -> stock.

Règle unique, pour create / edit / approve / reject / delete :

    new_applied = signed_effect(nouvel état)
    delta       = new_applied - pullout.applied_delta
    stock      -= delta
    pullout.applied_delta = new_applied

Propriétés :
- idempotent (rejouer le même état => delta 0)
- jamais de re-dérivation depuis une "quantité d'origine" côté client
- tout ou rien : voir ledger_transaction()
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from backend.app.config import PENDING_HOLDS_STOCK_DEFAULT
from backend.app.db.models.core_types import PulloutKind, PulloutStatus
from backend.app.exceptions import ConcurrencyConflictError
from backend.services.stock import adjust_quantity

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def signed_effect(
    status: PulloutStatus | None,
    kind: PulloutKind,
    quantity: Decimal,
    *,
    pending_holds_stock: bool = PENDING_HOLDS_STOCK_DEFAULT,
) -> Decimal:
    """
    Quantité retirée du stock par un pullout dans l'état donné.

    status=None représente un pullout supprimé.
    """
    if status is None or status == PulloutStatus.rejected:
        return ZERO
    if status == PulloutStatus.pending and not pending_holds_stock:
        return ZERO
    return quantity if kind == PulloutKind.removal else -quantity


def delta_to_apply(current_applied: Decimal, new_applied: Decimal) -> Decimal:
    return new_applied - (current_applied or ZERO)


def reconcile(db: Session, pullout, new_applied: Decimal) -> Decimal:
    """
    Aligne le stock sur ``new_applied`` pour ce pullout.

    Retourne le delta effectivement retiré du stock (0 si rien à faire).
    Lève InsufficientStockError si le stock passerait sous 0.
    """
    delta = delta_to_apply(pullout.applied_delta, new_applied)
    if delta != 0:
        adjust_quantity(db, pullout.ingredient_id, -delta)
    pullout.applied_delta = new_applied
    return delta


@contextmanager
def ledger_transaction(db: Session) -> Iterator[Session]:
    """
    Unité de travail du ledger : commit si tout passe, rollback sinon.

    Un StaleDataError (version_id ne correspond plus) signifie qu'une autre
    transaction a modifié la ligne entre-temps : ConcurrencyConflictError.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning("concurrent update detected, transaction rolled back")
        raise ConcurrencyConflictError(
            "The ingredient or pullout was modified concurrently; reload and retry"
        ) from exc
    except Exception:
        db.rollback()
        raise
