"""Pure validation rules for bet placement.

Each rule raises the matching AppError and has no side effects; the service
calls them in a fixed order before any mutation.
"""

from datetime import datetime
from decimal import Decimal

from src.pm_common.amounts import parse_amount, quantize_amount
from src.pm_common.datetime_utils import ensure_utc, seconds_between
from src.pm_common.enums import BetSide, MarketStatus
from src.pm_common.errors import (
    AmountOutOfRangeError,
    BetRateLimitedError,
    InsufficientFundsError,
    InvalidInputError,
    MarketClosedError,
    MarketExpiredError,
)
from src.pm_common.limits import PlatformLimits
from src.pm_ledger.domain.models import Bet, Market, User


def parse_side(raw: object) -> BetSide:
    """Exactly 'yes' or 'no': no case folding, no whitespace trimming."""
    if raw == BetSide.YES.value:
        return BetSide.YES
    if raw == BetSide.NO.value:
        return BetSide.NO
    raise InvalidInputError(f"side must be 'yes' or 'no', got {raw!r}")


def parse_bet_amount(raw: object, limits: PlatformLimits) -> Decimal:
    amount = parse_amount(raw)
    if amount is None or amount <= 0:
        raise InvalidInputError(f"amount must be a positive number, got {raw!r}")
    # range is checked on the exact value, rounding only once it is accepted
    if amount < limits.min_bet or amount > limits.max_bet:
        raise AmountOutOfRangeError(amount, limits.min_bet, limits.max_bet)
    return quantize_amount(amount)


def check_funds(user: User, amount: Decimal) -> None:
    if user.balance < amount:
        raise InsufficientFundsError(required=amount, available=user.balance)


def check_market_open(market: Market, now: datetime) -> None:
    if market.status != MarketStatus.ACTIVE:
        raise MarketClosedError(market.id)
    if ensure_utc(market.end_date) <= ensure_utc(now):
        raise MarketExpiredError(market.id)


def check_bet_rate(last_bet: Bet | None, now: datetime, limits: PlatformLimits) -> None:
    """One bet per (user, market) per window. Bets on other markets are not counted."""
    if last_bet is None:
        return
    window = limits.bet_rate_limit_window.total_seconds()
    elapsed = seconds_between(last_bet.created_at, now)
    if elapsed < window:
        raise BetRateLimitedError(retry_after_seconds=window - max(elapsed, 0.0))
