"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Account
  3xxx: Market
  4xxx: Bet
  9xxx: System
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from src.pm_common.amounts import CURRENCY, amount_to_display


class AppError(Exception):
    """Base application error.

    ``details`` carries structured context for the client (e.g. the current
    balance on insufficient funds) and is returned as the envelope's data.
    """

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.details = details
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Access token is missing, invalid or expired", 401)


# --- 2xxx: Account ---

class InsufficientFundsError(AppError):
    def __init__(self, required: Decimal, available: Decimal) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: you have {amount_to_display(available)}, "
            f"bet requires {amount_to_display(required)}",
            422,
            details={"current_balance": str(available), "required": str(required)},
        )
        self.required = required
        self.available = available


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"User not found: {user_id}", 404)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketClosedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3002, f"Market is no longer active: {market_id}", 422)


class MarketExpiredError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3003, f"Market has ended: {market_id}", 422)


class MarketAlreadyResolvedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3004, f"Market is already resolved: {market_id}", 409)


class NotMarketCreatorError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3005, f"Only the creator can settle market {market_id}", 403)


class MarketNotEndedError(AppError):
    def __init__(self, market_id: str, ends_at: datetime) -> None:
        super().__init__(
            3006,
            f"Market {market_id} has not ended yet (ends at {ends_at.isoformat()})",
            422,
            details={"ends_at": ends_at.isoformat()},
        )


class MarketNotResolvedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3007, f"Market is not resolved yet: {market_id}", 422)


# --- 4xxx: Bet ---

class InvalidInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Invalid input: {detail}", 400)


class AmountOutOfRangeError(AppError):
    def __init__(self, amount: Decimal, minimum: Decimal, maximum: Decimal) -> None:
        super().__init__(
            4002,
            f"Bet amount {amount:f} {CURRENCY} is out of range: "
            f"minimum {amount_to_display(minimum)}, maximum {amount_to_display(maximum)}",
            400,
        )


class BetRateLimitedError(AppError):
    def __init__(self, retry_after_seconds: float) -> None:
        super().__init__(
            4003,
            f"Wait {retry_after_seconds:.1f}s before betting on this market again",
            429,
            details={"retry_after_seconds": round(retry_after_seconds, 3)},
        )


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class StorageFailureError(AppError):
    def __init__(self, step: str) -> None:
        super().__init__(9003, f"Storage failure during {step}", 503)
