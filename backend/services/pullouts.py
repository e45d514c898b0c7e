"""
Pullout record store : CRUD sur la table pullouts.

Ne touche JAMAIS au stock. La réconciliation est à la charge du caller
(backend.services.ledger), et doit avoir lieu AVANT un delete.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Pullout
from backend.app.db.models.core_types import PulloutStatus
from backend.app.exceptions import (
    RecordNotFoundError,
    UnreconciledPulloutError,
    ValidationError,
)

# Figés à la création
IMMUTABLE_FIELDS = {"ingredient_id", "kind", "requested_by", "idempotency_key"}


def create_record(db: Session, **fields) -> Pullout:
    fields.setdefault("applied_delta", Decimal("0"))
    pullout = Pullout(**fields)
    db.add(pullout)
    db.flush()  # get pullout.id
    return pullout


def get_record(db: Session, pullout_id: int, *, for_update: bool = False) -> Pullout:
    stmt = select(Pullout).where(Pullout.id == pullout_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    pullout = db.execute(stmt).scalars().one_or_none()
    if not pullout:
        raise RecordNotFoundError(pullout_id)
    return pullout


def update_record(db: Session, pullout: Pullout, **changes) -> Pullout:
    frozen = IMMUTABLE_FIELDS & set(changes)
    for key in sorted(frozen):
        if changes[key] != getattr(pullout, key):
            raise ValidationError(f"{key} cannot be changed after creation")
        changes.pop(key)

    for key, value in changes.items():
        setattr(pullout, key, value)
    db.flush()
    return pullout


def delete_record(db: Session, pullout: Pullout) -> None:
    if pullout.applied_delta != 0:
        raise UnreconciledPulloutError(
            f"Pullout {pullout.id} still holds {pullout.applied_delta} of stock; reconcile before delete"
        )
    db.delete(pullout)
    db.flush()


def find_by_ingredient(
    db: Session,
    ingredient_id: int,
    status: PulloutStatus | None = None,
) -> list[Pullout]:
    return list_records(db, ingredient_id=ingredient_id, status=status)


def find_by_idempotency_key(db: Session, key: str) -> Pullout | None:
    return db.execute(select(Pullout).where(Pullout.idempotency_key == key)).scalar_one_or_none()


def list_records(
    db: Session,
    *,
    ingredient_id: int | None = None,
    status: PulloutStatus | None = None,
) -> list[Pullout]:
    stmt = select(Pullout).order_by(Pullout.date_of_pullout.desc(), Pullout.id.desc())
    if ingredient_id is not None:
        stmt = stmt.where(Pullout.ingredient_id == ingredient_id)
    if status is not None:
        stmt = stmt.where(Pullout.status == status)
    return list(db.execute(stmt).scalars().all())
