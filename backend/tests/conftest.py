import os

# Avant tout import backend.* : settings / engine lisent DATABASE_URL
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("PENDING_HOLDS_STOCK", "false")

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.db.base import Base
from backend.app.db.models.models_v1 import Ingredient, Staff
from backend.app.db.models.core_types import StaffRole


@pytest.fixture(scope="function")
def engine():
    """
    Base SQLite en mémoire, neuve pour chaque test.

    StaticPool : une seule connexion partagée, sinon chaque
    connexion verrait sa propre base vide.
    """
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def staff(db_session):
    """Un membre du staff par rôle : admin / manager / cashier."""
    members = {
        "admin": Staff(name="ADMIN", role=StaffRole.admin),
        "manager": Staff(name="MANAGER", role=StaffRole.manager),
        "cashier": Staff(name="CASHIER", role=StaffRole.cashier),
        "inactive": Staff(name="FORMER", role=StaffRole.manager, active=False),
    }
    db_session.add_all(members.values())
    db_session.commit()
    return {key: s.id for key, s in members.items()}


@pytest.fixture
def make_ingredient(db_session):
    def _make(name="Espresso beans", quantity="20", minimum_quantity="5", unit_cost="18.50", unit="kg"):
        ing = Ingredient(
            name=name,
            unit=unit,
            quantity=Decimal(quantity),
            minimum_quantity=Decimal(minimum_quantity),
            unit_cost=Decimal(unit_cost),
        )
        db_session.add(ing)
        db_session.commit()
        return ing.id

    return _make


@pytest.fixture
def today():
    return date(2026, 10, 17)


@pytest.fixture
def stock_of(db_session):
    """Relit la quantité en base (pas le cache de la session)."""

    def _read(ingredient_id) -> Decimal:
        db_session.expire_all()
        return db_session.get(Ingredient, ingredient_id).quantity

    return _read
