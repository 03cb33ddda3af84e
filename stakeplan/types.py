"""
Shared data structures for the engine.
"""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from stakeplan.money import round_currency
from stakeplan.target import (
    BASE_RISK_FRACTION,
    BENCHMARK_WIN_RATE,
    compute_target_profit,
    required_wins,
)

__all__ = [
    "Outcome",
    "TradeStatus",
    "SessionParameters",
    "SessionRuntimeState",
    "PendingTrade",
    "CompletedTrade",
]

Outcome = Literal["won", "lost"]
TradeStatus = Literal["pending", "won", "lost"]


class SessionParameters(BaseModel):
    """
    The declared parameters of a session.

    Values are not range-checked here. Out-of-range values are a "no target"
    signal that every calculator answers with a neutral result.
    """

    model_config = ConfigDict(frozen=True)

    capital: float = Field(..., description="Starting balance.")
    total_trades: int = Field(..., description="Planned number of trades.")
    accuracy: float = Field(..., description="Target win-rate percentage, 0-100.")
    risk_reward_ratio: float = Field(..., description="Profit multiple of the stake on a win.")

    @property
    def is_valid(self) -> bool:
        return (
            self.capital > 0
            and self.total_trades > 0
            and 0 <= self.accuracy <= 100
            and self.risk_reward_ratio > 0
        )

    @property
    def required_wins(self) -> int:
        return required_wins(self.total_trades, self.accuracy)

    def target_profit(
        self,
        benchmark_win_rate: float = BENCHMARK_WIN_RATE,
        base_risk_fraction: float = BASE_RISK_FRACTION,
    ) -> float:
        return compute_target_profit(
            self.capital,
            self.total_trades,
            self.accuracy,
            self.risk_reward_ratio,
            benchmark_win_rate=benchmark_win_rate,
            base_risk_fraction=base_risk_fraction,
        )


class SessionRuntimeState(BaseModel):
    """Progress of a session. Replaced, never mutated, after each resolved trade."""

    model_config = ConfigDict(frozen=True)

    wins: int = Field(0, ge=0, description="Completed wins so far.")
    completed_trades: int = Field(0, ge=0, description="Completed trades so far.")
    current_balance: float = Field(..., description="Capital plus realised profit/loss.")

    def apply(self, profit_or_loss: float, outcome: Outcome) -> "SessionRuntimeState":
        return SessionRuntimeState(
            wins=self.wins + (1 if outcome == "won" else 0),
            completed_trades=self.completed_trades + 1,
            current_balance=round_currency(self.current_balance + profit_or_loss),
        )


class PendingTrade(BaseModel):
    """A sized trade awaiting its win/loss verdict."""

    model_config = ConfigDict(frozen=True)

    trade_id: str = Field(..., description="Identifier used to record the outcome.")
    stake: float = Field(..., ge=0, description="Investment amount risked on the trade.")
    created_at: datetime = Field(..., description="When the trade was planned.")
    status: TradeStatus = Field("pending", description="Pending until an outcome is recorded.")


class CompletedTrade(BaseModel):
    """A resolved trade. Only the profit aligner ever rewrites one."""

    model_config = ConfigDict(frozen=True)

    trade_id: str
    investment: float = Field(..., ge=0)
    profit_or_loss: float
    profit_or_loss_percentage: float
    outcome: Outcome
    timestamp: datetime
