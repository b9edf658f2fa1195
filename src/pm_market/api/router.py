"""pm_market REST endpoints.

POST /markets              — create a market owned by the caller
POST /markets/cleanup      — delete the caller's markets beyond the newest N
GET  /markets/{market_id}  — full detail
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_user_id
from src.pm_market.application.schemas import CreateMarketRequest
from src.pm_market.application.service import MarketService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketService()


@router.post("")
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_market(db, user_id, body)
    resp = success_response(result.model_dump(mode="json"), message="Market created")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/cleanup")
async def cleanup_markets(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.cleanup_markets(db, user_id)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market(db, market_id)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
