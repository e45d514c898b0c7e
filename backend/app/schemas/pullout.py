from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from backend.app.db.models.core_types import PulloutKind, PulloutStatus
from backend.app.schemas.ingredient import IngredientRead


class PulloutCreate(BaseModel):
    ingredient_id: int
    kind: PulloutKind = PulloutKind.removal
    quantity: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    reason: str = Field(min_length=1)
    date_of_pullout: date
    requested_by: int
    # approbateur fourni => pullout créé directement "approved"
    approved_by: int | None = None


class PulloutUpdate(BaseModel):
    actor_id: int
    quantity: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    reason: str | None = Field(default=None, min_length=1)
    date_of_pullout: date | None = None

    class Config:
        extra = "forbid"


class PulloutApprove(BaseModel):
    approver_id: int


class PulloutReject(BaseModel):
    approver_id: int
    reason: str = Field(min_length=1)


class PulloutRead(BaseModel):
    id: int
    ingredient_id: int
    kind: PulloutKind
    quantity: Decimal
    reason: str
    date_of_pullout: date
    status: PulloutStatus
    requested_by: int
    approved_by: int | None = None
    approved_at: datetime | None = None
    rejected_by: int | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    applied_delta: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PulloutMutation(BaseModel):
    pullout: PulloutRead | None = None
    deleted_id: int | None = None
    ingredient: IngredientRead
