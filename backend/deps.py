"""
Shared FastAPI dependencies.

Routers import the DB-backed repository, the chain client, auth guard and
pagination from here so tests can swap any of them via
app.dependency_overrides.
"""

from __future__ import annotations

from typing import TypedDict

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from algorand_client import AlgorandClient, algorand_client
from database import get_db
from middleware.auth import require_user
from repository import PaymentRepository

__all__ = [
    "Pagination",
    "pagination_params",
    "get_repository",
    "get_chain_client",
    "require_user",
]


class Pagination(TypedDict):
    limit: int
    offset: int


def pagination_params(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=100_000),
) -> Pagination:
    return {"limit": limit, "offset": offset}


async def get_repository(db: AsyncSession = Depends(get_db)) -> PaymentRepository:
    return PaymentRepository(db)


def get_chain_client() -> AlgorandClient:
    """algod wrapper used by verification, balance, params and health routes."""
    return algorand_client
