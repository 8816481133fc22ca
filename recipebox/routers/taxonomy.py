from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_user_id
from ..models import MealType, Nationality, CookingMethod, Utensil
from ..schemas import TaxonomyOut
from ..services.recipes_service import list_taxonomy

router = APIRouter()


@router.get("/meal-types", response_model=list[TaxonomyOut])
def list_meal_types(db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    return list_taxonomy(db, MealType)


@router.get("/nationalities", response_model=list[TaxonomyOut])
def list_nationalities(db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    return list_taxonomy(db, Nationality)


@router.get("/cooking-methods", response_model=list[TaxonomyOut])
def list_cooking_methods(db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    return list_taxonomy(db, CookingMethod)


@router.get("/utensils", response_model=list[TaxonomyOut])
def list_utensils(db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    return list_taxonomy(db, Utensil)
