"""Civic directory API — cities, departments and categories for assignment dropdowns."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.infrastructure.database import get_db
from app.interfaces.api.deps import get_current_user
from app.domain.models.user import User
from app.application.services.civic_directory_service import (
    list_categories,
    list_cities,
    list_departments,
)

router = APIRouter(prefix="/api/directory", tags=["Directory"])


@router.get("/cities")
def cities(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"cities": list_cities(db)}


@router.get("/departments")
def departments(city: str = "", db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"city": city, "departments": list_departments(db, city)}


@router.get("/categories")
def categories(
    city: str = "",
    department: str = "",
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"city": city, "department": department, "categories": list_categories(db, city, department)}
