from __future__ import annotations

from typing import Generator

from backend.app.config import settings
from backend.app.db.session import SessionLocal

def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_pending_policy() -> bool:
    """Politique "pending retire du stock" (surchargeable en test)."""
    return settings.PENDING_HOLDS_STOCK
