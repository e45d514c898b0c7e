from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.db.models.models_v1 import Staff
from backend.app.schemas.staff import StaffCreate, StaffRead

router = APIRouter(prefix="/staff")


@router.get("", response_model=list[StaffRead])
def list_staff(db: Session = Depends(get_db)):
    return db.execute(select(Staff).order_by(Staff.id)).scalars().all()


@router.post("", response_model=StaffRead, status_code=201)
def create_staff(payload: StaffCreate, db: Session = Depends(get_db)):
    s = Staff(name=payload.name, role=payload.role, active=payload.active)
    db.add(s)
    db.commit()
    db.refresh(s)
    return s
