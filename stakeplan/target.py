"""
Aspirational target profit for a session.

The target is deliberately independent of the session's own accuracy: it
compounds a fixed benchmark win rate at a fixed per-trade risk fraction, so it
describes what a good session *could* make rather than predicting this one.
"""
import logging
import math
import sys

from stakeplan.money import round_currency, round_half_up, round_to_step

__all__ = [
    "BENCHMARK_WIN_RATE",
    "BASE_RISK_FRACTION",
    "compute_target_profit",
    "profit_step",
    "required_wins",
]

log = logging.getLogger(__name__)

# Business constants. Overridable through `engine` in the YAML config.
BENCHMARK_WIN_RATE = 0.60
BASE_RISK_FRACTION = 0.06

# Growth exponents are kept below this so math.expm1 cannot overflow.
_MAX_LOG_GROWTH = math.log(sys.float_info.max) - 1


def _is_valid(capital: float, total_trades: int, accuracy: float, risk_reward_ratio: float) -> bool:
    return capital > 0 and total_trades > 0 and 0 <= accuracy <= 100 and risk_reward_ratio > 0


def required_wins(total_trades: int, accuracy: float) -> int:
    """Wins needed out of `total_trades` to meet `accuracy` percent, clamped to the trade count."""
    if total_trades <= 0:
        return 0
    # Rounding first keeps 10 * 70 / 100 style products from ceiling up on float noise.
    wins = math.ceil(round(total_trades * accuracy / 100, 9))
    return max(0, min(int(wins), int(total_trades)))


def profit_step(risk_reward_ratio: float) -> float:
    """The smoothing step the target is snapped to. Never finer than a cent."""
    return max(round_half_up(risk_reward_ratio * 0.01, 2), 0.01)


def compute_target_profit(
    capital: float,
    total_trades: int,
    accuracy: float,
    risk_reward_ratio: float,
    benchmark_win_rate: float = BENCHMARK_WIN_RATE,
    base_risk_fraction: float = BASE_RISK_FRACTION,
) -> float:
    """
    Computes the target profit for a session.

    Args:
        capital: Starting balance.
        total_trades: Planned number of trades.
        accuracy: Target win-rate percentage. Only validated, it does not
                  enter the formula.
        risk_reward_ratio: Profit multiple of the stake on a win.
        benchmark_win_rate: Win rate assumed when compounding.
        base_risk_fraction: Fraction of the balance risked per trade.

    Returns:
        The target profit rounded to the risk:reward step and to cents, or
        0.0 for invalid or non-profitable configurations.
    """
    if not _is_valid(capital, total_trades, accuracy, risk_reward_ratio):
        log.debug(
            "No target for capital=%s trades=%s accuracy=%s rr=%s",
            capital, total_trades, accuracy, risk_reward_ratio,
        )
        return 0.0
    if not (0 < base_risk_fraction < 1 and 0 <= benchmark_win_rate <= 1):
        log.warning(
            "Engine constants out of range: benchmark=%s risk_fraction=%s",
            benchmark_win_rate, base_risk_fraction,
        )
        return 0.0

    expected_wins = total_trades * benchmark_win_rate
    expected_losses = total_trades - expected_wins

    # Compounded in log space; long sessions overflow a direct power.
    log_multiplier = (
        expected_wins * math.log1p(risk_reward_ratio * base_risk_fraction)
        + expected_losses * math.log1p(-base_risk_fraction)
    )
    if log_multiplier <= 0:
        return 0.0
    growth = math.expm1(log_multiplier) if log_multiplier < _MAX_LOG_GROWTH else math.inf
    raw_profit = capital * growth
    target = round_currency(round_to_step(raw_profit, profit_step(risk_reward_ratio)))
    if not math.isfinite(target):
        log.warning(
            "Target for capital=%s trades=%s rr=%s exceeds the float range",
            capital, total_trades, risk_reward_ratio,
        )
        return 0.0
    return max(0.0, target)
