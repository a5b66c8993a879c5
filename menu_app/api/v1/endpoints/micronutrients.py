"""Micronutrient and daily norm endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from menu_app.core.exceptions import NotFoundError
from menu_app.db.session import get_db
from menu_app.schemas.nutrition import DailyNorm, DailyNormSet, Micronutrient, MicronutrientCreate
from menu_app.services.menu import MenuService

router = APIRouter()


@router.post("", response_model=Micronutrient, status_code=status.HTTP_201_CREATED)
def create_micronutrient(payload: MicronutrientCreate, db: Session = Depends(get_db)):
    """Create a micronutrient."""
    return MenuService(db).create_micronutrient(payload.name, payload.unit, payload.description)


@router.put("/{micronutrient_id}/norms", response_model=DailyNorm)
def set_daily_norm(micronutrient_id: int, payload: DailyNormSet, db: Session = Depends(get_db)):
    """Set the daily norm for an age group and gender."""
    try:
        return MenuService(db).set_daily_norm(
            micronutrient_id, payload.daily_amount, payload.age_group, payload.gender
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
