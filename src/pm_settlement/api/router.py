"""pm_settlement REST API.

POST /markets/{market_id}/resolve   — creator resolves the market and pays out
POST /markets/{market_id}/reconcile — creator re-drives credits skipped at resolution
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_user_id
from src.pm_settlement.application.schemas import ResolveMarketRequest
from src.pm_settlement.application.service import SettlementService

router = APIRouter(prefix="/markets", tags=["settlement"])

_service = SettlementService()


@router.post("/{market_id}/resolve")
async def resolve_market(
    market_id: str,
    body: ResolveMarketRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.resolve_market(db, user_id, market_id, body.outcome)
    resp = success_response(result.model_dump(mode="json"), message=result.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{market_id}/reconcile")
async def reconcile_market(
    market_id: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.reconcile_market(db, user_id, market_id)
    resp = success_response(result.model_dump(mode="json"), message=result.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
