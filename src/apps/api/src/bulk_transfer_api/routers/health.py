"""Health check endpoint."""
import sqlite3

from fastapi import APIRouter, Depends, HTTPException

from bulk_transfer_api.deps import get_store

router = APIRouter(tags=["health"])


@router.get("/health")
def health(store=Depends(get_store)):
    """Health check, including a round trip to the database."""
    try:
        with store.get_conn() as conn:
            conn.execute("SELECT 1")
    except sqlite3.Error as e:
        raise HTTPException(status_code=503, detail=f"Database unavailable: {e}") from e
    return {"status": "ok", "database": "ok"}
