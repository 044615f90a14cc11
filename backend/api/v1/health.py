"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from db import is_database_connected

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    database_connected: bool


@router.get("/health", response_model=HealthResponse)
async def health(session: AsyncSession = Depends(get_db)) -> HealthResponse:
    return HealthResponse(status="ok", database_connected=await is_database_connected(session))
