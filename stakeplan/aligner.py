"""
Post-hoc reconciliation of realised session profit with the target.

Per-trade cent rounding leaves the realised profit a little off the target.
`align_profit` closes that gap by rewriting exactly one completed trade: the
most recent win when profit is short, the most recent loss when it is over.
Only that trade's investment and profit magnitudes move. Its outcome never
changes, and a rewrite that would leave the gap wider is not kept.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from stakeplan.money import round_currency, round_half_up
from stakeplan.types import CompletedTrade

__all__ = ["AlignmentResult", "align_profit"]

log = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.01
DEFAULT_MAX_PASSES = 3


@dataclass(frozen=True)
class AlignmentResult:
    """
    Outcome of an alignment attempt.

    `trades` is always a fresh list in the input order. When `reconciled` is
    False, `residual` is the discrepancy the caller should report.
    """

    trades: List[CompletedTrade]
    adjusted_trade_id: Optional[str]
    passes: int
    residual: float
    reconciled: bool
    reason: str


def _residual(trades: Sequence[CompletedTrade], target_profit: float) -> float:
    return target_profit - sum(t.profit_or_loss for t in trades)


def _select_candidate(trades: Sequence[CompletedTrade], delta: float) -> int:
    """Index of the trade to adjust. Chronological by timestamp, list order breaks ties."""
    chronological = sorted(range(len(trades)), key=lambda i: (trades[i].timestamp, i))
    preferred = "won" if delta > 0 else "lost"
    for i in reversed(chronological):
        if trades[i].outcome == preferred:
            return i
    return chronological[-1]


def _profit_ratio(trade: CompletedTrade) -> float:
    """Realised profit per unit invested."""
    if trade.investment > 0:
        return trade.profit_or_loss / trade.investment
    return trade.profit_or_loss_percentage / 100


def _percentage(trade: CompletedTrade, investment: float, profit: float) -> float:
    if investment > 0:
        return profit / investment * 100
    return trade.profit_or_loss_percentage


def _adjust_won(trade: CompletedTrade, delta: float, ratio: float, exact: bool) -> CompletedTrade:
    wanted = trade.profit_or_loss + delta
    if exact:
        # Land on the cent; the investment stays, so the ratio moves by at most a cent's worth.
        profit = round_currency(max(0.0, wanted))
        investment = trade.investment if trade.investment > 0 else round_currency(profit / ratio)
    else:
        investment = round_currency(max(0.0, wanted / ratio))
        profit = round_currency(investment * ratio)
    return trade.model_copy(update={
        "investment": investment,
        "profit_or_loss": profit,
        "profit_or_loss_percentage": _percentage(trade, investment, profit),
    })


def _adjust_lost(trade: CompletedTrade, delta: float) -> CompletedTrade:
    # A lost trade's investment is its loss magnitude.
    investment = round_currency(abs(trade.profit_or_loss + delta))
    profit = -investment
    return trade.model_copy(update={
        "investment": investment,
        "profit_or_loss": profit,
        "profit_or_loss_percentage": _percentage(trade, investment, profit),
    })


def align_profit(
    completed_trades: Sequence[CompletedTrade],
    target_profit: float,
    tolerance: float = DEFAULT_TOLERANCE,
    max_passes: int = DEFAULT_MAX_PASSES,
) -> AlignmentResult:
    """
    Rewrites at most one trade so the summed profit meets `target_profit`.

    Args:
        completed_trades: Resolved trades of one session, in recorded order.
        target_profit: The session's target profit.
        tolerance: Gap below which the session counts as reconciled.
        max_passes: Upper bound on corrective passes over the chosen trade.
            Passes before the last preserve the trade's profit/investment
            ratio exactly. When more than one pass is allowed, the last one
            lands a won trade's profit on the cent instead.

    Returns:
        An AlignmentResult. It never raises for an unreconciled gap.
    """
    trades = list(completed_trades)
    if not trades:
        residual = round_currency(target_profit)
        return AlignmentResult(
            trades, None, 0, residual, abs(residual) < tolerance, "No completed trades to align."
        )

    delta = _residual(trades, target_profit)
    if abs(delta) < tolerance:
        return AlignmentResult(
            trades, None, 0, round_half_up(delta, 4), True, "Profit already within tolerance."
        )

    index = _select_candidate(trades, delta)
    original = trades[index]
    ratio = _profit_ratio(original)
    if original.outcome == "won" and ratio <= 0:
        log.warning("Trade %s has no usable profit ratio; leaving gap of %.2f", original.trade_id, delta)
        return AlignmentResult(
            trades, None, 0, round_half_up(delta, 4), False,
            f"Candidate trade {original.trade_id} has no usable profit ratio.",
        )

    # Only a rewrite that narrows the gap is kept; the best pass wins.
    start_delta = delta
    best: Optional[List[CompletedTrade]] = None
    best_delta = delta
    working = list(trades)
    passes = 0
    for pass_no in range(1, max_passes + 1):
        current = working[index]
        if current.outcome == "won":
            exact = pass_no == max_passes and pass_no > 1
            working[index] = _adjust_won(current, delta, ratio, exact)
        else:
            working[index] = _adjust_lost(current, delta)
        passes = pass_no
        delta = _residual(working, target_profit)
        if abs(delta) < abs(best_delta):
            best, best_delta = list(working), delta
        if abs(delta) < tolerance:
            break

    if best is None:
        log.warning(
            "Rewriting trade %s would not narrow the gap of %.2f", original.trade_id, start_delta
        )
        return AlignmentResult(
            trades, None, passes, round_half_up(start_delta, 4), False,
            f"Adjusting trade {original.trade_id} would not narrow the gap.",
        )

    trades, delta = best, best_delta
    reconciled = abs(delta) < tolerance
    if reconciled:
        log.info("Aligned trade %s in %d pass(es)", original.trade_id, passes)
        reason = f"Adjusted trade {original.trade_id}."
    else:
        log.warning(
            "Trade %s left a residual of %.2f after %d pass(es)", original.trade_id, delta, passes
        )
        reason = f"Adjusted trade {original.trade_id}; residual {delta:.2f} remains."
    return AlignmentResult(trades, original.trade_id, passes, round_half_up(delta, 4), reconciled, reason)
