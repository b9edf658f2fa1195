"""pm_betting REST API.

POST /bets — place a bet on one side of a market
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_betting.application.schemas import PlaceBetRequest
from src.pm_betting.application.service import BettingService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_user_id

router = APIRouter(prefix="/bets", tags=["bets"])

_service = BettingService()


@router.post("")
async def place_bet(
    body: PlaceBetRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.place_bet(db, user_id, body.market_id, body.side, body.amount)
    resp = success_response(result.model_dump(mode="json"), message=result.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
