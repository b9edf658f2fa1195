"""Compensation log for multi-step mutations over a store with per-row atomicity only.

Every saga step commits on its own. After a step succeeds the caller pushes
its inverse; when a later step fails, ``unwind()`` runs the inverses in
reverse order, each committed separately.

An inverse signals failure by raising SQLAlchemyError or by returning None
(its conditional UPDATE matched no row). A failed inverse leaves the ledger
inconsistent, so it is logged at CRITICAL with its description and the
remaining inverses still run.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

Compensation = Callable[[], Awaitable[Any]]


class CompensationLog:
    def __init__(self, db: AsyncSession, operation: str) -> None:
        self._db = db
        self._operation = operation
        self._steps: list[tuple[str, Compensation]] = []

    def push(self, description: str, undo: Compensation) -> None:
        self._steps.append((description, undo))

    def __len__(self) -> int:
        return len(self._steps)

    async def unwind(self) -> bool:
        """Run every registered inverse, newest first. Returns True if all succeeded."""
        all_ok = True
        while self._steps:
            description, undo = self._steps.pop()
            try:
                result = await undo()
                await self._db.commit()
            except SQLAlchemyError:
                await self._db.rollback()
                logger.critical(
                    "Compensation failed, manual reconciliation required: %s (%s)",
                    description,
                    self._operation,
                    exc_info=True,
                )
                all_ok = False
                continue
            if result is None:
                logger.critical(
                    "Compensation matched no row, manual reconciliation required: %s (%s)",
                    description,
                    self._operation,
                )
                all_ok = False
            else:
                logger.warning("Compensated: %s (%s)", description, self._operation)
        return all_ok
