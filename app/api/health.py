from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_db
from app.services.issue_index_service import IssueIndexService

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/")
@router.get("")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "message": "Service is running"}


@router.get("/index")
async def index_health(session: AsyncSession = Depends(get_db)):
    """Report whether the issue index answers and how many documents it holds."""
    try:
        documents = await IssueIndexService(session).count()
        return {"status": "healthy", "documents": documents}
    except SQLAlchemyError as e:
        return JSONResponse(
            content={"status": "unavailable", "error": str(e), "documents": 0},
            status_code=503,
        )
