from __future__ import annotations

from pydantic import BaseModel, Field

from backend.app.db.models.core_types import StaffRole


class StaffCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    role: StaffRole
    active: bool = True


class StaffRead(BaseModel):
    id: int
    name: str
    role: StaffRole
    active: bool

    class Config:
        from_attributes = True
