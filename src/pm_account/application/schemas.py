"""Pydantic schemas for pm_account API."""

from decimal import Decimal

from pydantic import BaseModel

from src.pm_common.amounts import CURRENCY, amount_to_display


class BalanceResponse(BaseModel):
    user_id: str
    balance: Decimal
    balance_display: str
    currency: str

    @classmethod
    def from_balance(cls, user_id: str, balance: Decimal) -> "BalanceResponse":
        return cls(
            user_id=user_id,
            balance=balance,
            balance_display=amount_to_display(balance),
            currency=CURRENCY,
        )
