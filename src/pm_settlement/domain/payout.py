"""Pari-mutuel payout planning — pure, no I/O.

Given the frozen pools and the market's bets, decide who is credited what:

  Normal case (winning pool > 0), fee-free:
      winnings = amount + losing_pool * amount / winning_pool
    Each winning bet gets its stake back plus its share of the losing pool;
    losing bets get nothing. Winnings are rounded DOWN to 1 lamport, so the
    sum never exceeds the total pool (dust stays unallocated).

  Degenerate case (winning pool == 0, including an empty market):
    Every bet is refunded its own amount and no payout value is recorded.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from src.pm_common.amounts import ZERO, quantize_amount
from src.pm_common.enums import BetSide
from src.pm_ledger.domain.models import Bet


@dataclass(frozen=True)
class PayoutEntry:
    bet: Bet
    credit: Decimal            # amount credited to the bettor's balance
    payout: Decimal | None     # recorded on the bet; None for refunds


@dataclass(frozen=True)
class SettlementPlan:
    outcome: BetSide
    winning_pool: Decimal
    losing_pool: Decimal
    entries: list[PayoutEntry] = field(default_factory=list)

    @property
    def is_refund(self) -> bool:
        return self.winning_pool == ZERO

    @property
    def total_pool(self) -> Decimal:
        return self.winning_pool + self.losing_pool

    @property
    def total_credit(self) -> Decimal:
        return sum((e.credit for e in self.entries), ZERO)


def compute_winnings(amount: Decimal, winning_pool: Decimal, losing_pool: Decimal) -> Decimal:
    if winning_pool <= ZERO:
        raise ValueError("winning_pool must be positive")
    # multiply before dividing to keep precision
    return quantize_amount(amount + losing_pool * amount / winning_pool)


def plan_settlement(
    bets: list[Bet],
    outcome: BetSide,
    yes_pool: Decimal,
    no_pool: Decimal,
) -> SettlementPlan:
    winning_pool = yes_pool if outcome is BetSide.YES else no_pool
    losing_pool = no_pool if outcome is BetSide.YES else yes_pool

    if winning_pool == ZERO:
        entries = [PayoutEntry(bet=b, credit=b.amount, payout=None) for b in bets]
    else:
        entries = []
        for bet in bets:
            if bet.side != outcome.value:
                continue
            winnings = compute_winnings(bet.amount, winning_pool, losing_pool)
            entries.append(PayoutEntry(bet=bet, credit=winnings, payout=winnings))

    return SettlementPlan(
        outcome=outcome,
        winning_pool=winning_pool,
        losing_pool=losing_pool,
        entries=entries,
    )
