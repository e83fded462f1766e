from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from config.settings import settings
from database.db import get_db

router = APIRouter(prefix="/meta", tags=["Meta"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"success": True, "data": {"status": "ok", "database": "ok", "env": settings.ENV},
            "message": "API is running"}


@router.get("/limits")
def limits():
    return {
        "success": True,
        "data": {
            "page_size_default": 50,
            "page_size_max": 500,
            "default_clo_target": settings.DEFAULT_CLO_TARGET,
            "default_plo_target": settings.DEFAULT_PLO_TARGET,
        },
        "message": "API limits",
    }
