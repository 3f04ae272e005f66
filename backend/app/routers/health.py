from fastapi import APIRouter
from app.db.database import db

router = APIRouter(tags=["health"])


@router.get("/api/v1/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/api/v1/health/db")
async def health_db():
    """Check that the database answers queries."""
    ok = await db.ping()
    return {"database": "ok" if ok else "unreachable", "ok": ok}
