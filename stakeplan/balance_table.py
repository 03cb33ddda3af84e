"""
Required-balance table.

`req[w][r]` is the smallest balance from which, with `r` trades left and `w`
wins still guaranteed among them, some stake sequence reaches the target
balance whatever order the wins and losses arrive in. It is filled backwards
from the `w = 0` row, where the balance must already be at the target.

Cells are rounded up to the cent. A cent-valued balance at or above a cell
then always admits a cent-valued stake that keeps both branches at or above
their cells, so cent rounding never erodes the guarantee. Cells are read
exactly. Monotonicity in either index is not relied upon.
"""
import logging
from functools import lru_cache
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from stakeplan.money import ceil_currency, round_currency
from stakeplan.types import SessionParameters

if TYPE_CHECKING:
    from stakeplan.config import EngineConfig

__all__ = [
    "build_required_balance_table",
    "cached_required_balance_table",
    "table_to_frame",
]

log = logging.getLogger(__name__)


def _empty_table() -> np.ndarray:
    table = np.empty((0, 0), dtype=np.float64)
    table.flags.writeable = False
    return table


def build_required_balance_table(
    target_balance: float,
    risk_reward_ratio: float,
    total_trades: int,
    required_wins: int,
) -> np.ndarray:
    """
    Builds the dense `(required_wins + 1, total_trades + 1)` table.

    Args:
        target_balance: Balance the session must end at or above.
        risk_reward_ratio: R, the profit multiple of the stake on a win.
        total_trades: N, the planned number of trades.
        required_wins: W, the number of wins the session is counted on.

    Returns:
        A read-only float array indexed `[wins_needed, trades_remaining]`,
        holding `np.inf` where no stake sequence can succeed. Invalid inputs
        give an empty `(0, 0)` array.
    """
    if (
        total_trades <= 0
        or risk_reward_ratio <= 0
        or not np.isfinite(target_balance)
        or target_balance < 0
        or not 0 <= required_wins <= total_trades
    ):
        log.debug(
            "Empty table for target=%s rr=%s trades=%s wins=%s",
            target_balance, risk_reward_ratio, total_trades, required_wins,
        )
        return _empty_table()

    ratio = float(risk_reward_ratio)
    req = np.full((required_wins + 1, total_trades + 1), np.inf, dtype=np.float64)
    req[0, :] = round_currency(target_balance)

    for w in range(1, required_wins + 1):
        # Must win every remaining trade.
        req[w, w] = ceil_currency(req[w - 1, w - 1] / (ratio + 1))
        for r in range(w + 1, total_trades + 1):
            loss_req = req[w, r - 1]
            win_req = req[w - 1, r - 1]
            if np.isinf(loss_req):
                req[w, r] = ceil_currency(win_req / (ratio + 1)) if np.isfinite(win_req) else np.inf
            else:
                candidate = (win_req + ratio * loss_req) / (ratio + 1)
                req[w, r] = ceil_currency(max(loss_req, candidate))

    req.flags.writeable = False
    log.debug("Built %dx%d required-balance table", *req.shape)
    return req


@lru_cache(maxsize=128)
def cached_required_balance_table(
    params: SessionParameters, engine: "EngineConfig"
) -> np.ndarray:
    """
    Returns the table for a session configuration, building it only once per
    distinct `(capital, total_trades, accuracy, risk_reward_ratio)` and engine
    constants.
    """
    if not params.is_valid:
        return _empty_table()
    target_profit = params.target_profit(
        benchmark_win_rate=engine.benchmark_win_rate,
        base_risk_fraction=engine.base_risk_fraction,
    )
    return build_required_balance_table(
        params.capital + target_profit,
        params.risk_reward_ratio,
        params.total_trades,
        params.required_wins,
    )


def table_to_frame(table: np.ndarray) -> pd.DataFrame:
    """Labels the table for display: rows are wins needed, columns trades remaining."""
    if table.size == 0:
        return pd.DataFrame()
    frame = pd.DataFrame(table.copy())
    frame.index.name = "wins_needed"
    frame.columns.name = "trades_remaining"
    return frame
