from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, get_pending_policy
from backend.app.db.models.core_types import PulloutStatus
from backend.app.schemas.ingredient import IngredientRead
from backend.app.schemas.pullout import (
    PulloutApprove,
    PulloutCreate,
    PulloutMutation,
    PulloutRead,
    PulloutReject,
    PulloutUpdate,
)
from backend.services import ledger
from backend.services.ledger import LedgerResult

router = APIRouter(prefix="/pullouts")


# ---------- Helpers ----------
def _clean_idempotency_key(idempotency_key: str | None) -> str | None:
    if idempotency_key is None:
        return None
    key = idempotency_key.strip()
    if not key or len(key) > 64:
        raise HTTPException(status_code=400, detail="Idempotency-Key must be 1..64 characters")
    return key


def _mutation(result: LedgerResult, deleted_id: int | None = None) -> PulloutMutation:
    return PulloutMutation(
        pullout=PulloutRead.model_validate(result.pullout) if result.pullout is not None else None,
        deleted_id=deleted_id,
        ingredient=IngredientRead.from_model(result.ingredient),
    )


# ---------- Endpoints ----------
@router.get("", response_model=list[PulloutRead])
def list_pullouts(
    ingredient_id: int | None = None,
    status: PulloutStatus | None = None,
    db: Session = Depends(get_db),
):
    return ledger.list_pullouts(db, ingredient_id=ingredient_id, status=status)


@router.get("/{pullout_id}", response_model=PulloutRead)
def get_pullout(pullout_id: int, db: Session = Depends(get_db)):
    return ledger.get_pullout(db, pullout_id)


@router.post("", response_model=PulloutMutation, status_code=201)
def create_pullout(
    payload: PulloutCreate,
    db: Session = Depends(get_db),
    pending_holds_stock: bool = Depends(get_pending_policy),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    result = ledger.create_pullout(
        db,
        **payload.model_dump(),
        idempotency_key=_clean_idempotency_key(idempotency_key),
        pending_holds_stock=pending_holds_stock,
    )
    return _mutation(result)


@router.patch("/{pullout_id}", response_model=PulloutMutation)
def edit_pullout(
    pullout_id: int,
    payload: PulloutUpdate,
    db: Session = Depends(get_db),
    pending_holds_stock: bool = Depends(get_pending_policy),
):
    changes = payload.model_dump(exclude_unset=True)
    result = ledger.edit_pullout(db, pullout_id, pending_holds_stock=pending_holds_stock, **changes)
    return _mutation(result)


@router.post("/{pullout_id}/approve", response_model=PulloutMutation)
def approve_pullout(
    pullout_id: int,
    payload: PulloutApprove,
    db: Session = Depends(get_db),
    pending_holds_stock: bool = Depends(get_pending_policy),
):
    result = ledger.approve_pullout(
        db, pullout_id, approver_id=payload.approver_id, pending_holds_stock=pending_holds_stock
    )
    return _mutation(result)


@router.post("/{pullout_id}/reject", response_model=PulloutMutation)
def reject_pullout(
    pullout_id: int,
    payload: PulloutReject,
    db: Session = Depends(get_db),
    pending_holds_stock: bool = Depends(get_pending_policy),
):
    result = ledger.reject_pullout(
        db,
        pullout_id,
        approver_id=payload.approver_id,
        reason=payload.reason,
        pending_holds_stock=pending_holds_stock,
    )
    return _mutation(result)


@router.delete("/{pullout_id}", response_model=PulloutMutation)
def delete_pullout(pullout_id: int, actor_id: int, db: Session = Depends(get_db)):
    result = ledger.delete_pullout(db, pullout_id, actor_id=actor_id)
    return _mutation(result, deleted_id=pullout_id)
