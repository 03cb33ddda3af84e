"""
Applying win/loss verdicts to pending trades.
"""
from datetime import datetime
from typing import Tuple

from stakeplan.money import round_currency
from stakeplan.types import CompletedTrade, PendingTrade, SessionRuntimeState

__all__ = ["StakePlanError", "TradeStateError", "record_outcome", "resolve_trade"]


class StakePlanError(Exception):
    """Base exception for engine precondition failures."""


class TradeStateError(StakePlanError):
    """Raised when an outcome is recorded on a trade that is not pending."""


def record_outcome(stake: float, risk_reward_ratio: float, outcome: str) -> Tuple[float, float]:
    """
    Returns `(profit_or_loss, profit_or_loss_percentage)` for a resolved stake.

    A win pays `stake * R`. A loss forfeits the whole stake.
    """
    if outcome == "won":
        return round_currency(stake * risk_reward_ratio), risk_reward_ratio * 100
    if outcome == "lost":
        return round_currency(-stake), -100.0
    raise ValueError(f"Unknown outcome {outcome!r}; expected 'won' or 'lost'.")


def resolve_trade(
    pending: PendingTrade,
    outcome: str,
    risk_reward_ratio: float,
    state: SessionRuntimeState,
    timestamp: datetime,
) -> Tuple[CompletedTrade, SessionRuntimeState]:
    """
    Turns a pending trade into a completed one and advances the runtime state.

    Raises:
        TradeStateError: If `pending` has already been resolved. Nothing is
            returned or changed in that case.
        ValueError: If `outcome` is not 'won' or 'lost'.
    """
    if pending.status != "pending":
        raise TradeStateError(f"Trade {pending.trade_id} result already recorded ({pending.status}).")

    profit, percentage = record_outcome(pending.stake, risk_reward_ratio, outcome)
    completed = CompletedTrade(
        trade_id=pending.trade_id,
        investment=pending.stake,
        profit_or_loss=profit,
        profit_or_loss_percentage=percentage,
        outcome=outcome,
        timestamp=timestamp,
    )
    return completed, state.apply(profit, completed.outcome)
