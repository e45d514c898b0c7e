from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.schemas.ingredient import IngredientCreate, IngredientRead, IngredientUpdate
from backend.services import stock

router = APIRouter(prefix="/ingredients")


@router.get("", response_model=list[IngredientRead])
def list_ingredients(low_stock: bool = False, db: Session = Depends(get_db)):
    """
    Stock (READ ONLY)
    - low_stock=true : quantity <= minimum_quantity
    """
    rows = stock.list_ingredients(db, low_stock_only=low_stock)
    return [IngredientRead.from_model(ing) for ing in rows]


@router.get("/{ingredient_id}", response_model=IngredientRead)
def get_ingredient(ingredient_id: int, db: Session = Depends(get_db)):
    return IngredientRead.from_model(stock.get_ingredient(db, ingredient_id))


@router.post("", response_model=IngredientRead, status_code=201)
def create_ingredient(payload: IngredientCreate, db: Session = Depends(get_db)):
    ing = stock.create_ingredient(db, **payload.model_dump())
    return IngredientRead.from_model(ing)


@router.patch("/{ingredient_id}", response_model=IngredientRead)
def update_ingredient(ingredient_id: int, payload: IngredientUpdate, db: Session = Depends(get_db)):
    ing = stock.update_ingredient(db, ingredient_id, **payload.model_dump(exclude_unset=True))
    return IngredientRead.from_model(ing)
