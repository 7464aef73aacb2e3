"""Position ingestion and query endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from ..core.engine import PositionEngine
from ..models.positions import CollectResponse, ErrorResponse

router = APIRouter(tags=["positions"])


def get_engine(request: Request) -> PositionEngine:
    return request.app.state.engine


@router.post(
    "/collect",
    response_model=CollectResponse,
    responses={400: {"model": ErrorResponse}},
)
async def collect_position(request: Request) -> CollectResponse:
    """Accept one position and broadcast it to live subscribers."""

    raw = await request.body()
    get_engine(request).submit(
        raw,
        forwarded_for=request.headers.get("x-forwarded-for"),
        peer=request.client.host if request.client else None,
    )
    return CollectResponse(ok=True)


@router.get("/latest", responses={404: {"model": ErrorResponse}})
async def latest_position(request: Request) -> dict[str, Any]:
    """Return the most recently accepted position."""
    return get_engine(request).latest().payload()


@router.get("/history")
async def position_history(request: Request) -> list[dict[str, Any]]:
    """Return the retained positions, oldest first."""
    return [update.payload() for update in get_engine(request).history()]
