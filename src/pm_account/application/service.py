"""AccountService — read-only view of the caller's balance."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.schemas import BalanceResponse
from src.pm_common.errors import UserNotFoundError
from src.pm_ledger.domain.repository import LedgerStoreProtocol
from src.pm_ledger.infrastructure.persistence import LedgerRepository


class AccountService:
    def __init__(self, repo: LedgerStoreProtocol | None = None) -> None:
        self._repo: LedgerStoreProtocol = repo or LedgerRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        user = await self._repo.get_user(db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return BalanceResponse.from_balance(user.id, user.balance)
