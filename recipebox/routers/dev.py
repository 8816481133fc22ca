"""Dev-only endpoints for seeding.

Endpoints:
- POST /api/dev/seed - Create taxonomy reference rows
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..seed import seed_taxonomy

router = APIRouter()


@router.post("/dev/seed")
def seed(db: Session = Depends(get_db)):
    """Seed meal types, nationalities, utensils and cooking methods (idempotent)."""
    created = seed_taxonomy(db)
    return {
        "created": created,
        "message": f"Created {sum(created.values())} taxonomy rows",
    }
