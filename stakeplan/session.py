"""
Session driver: the plan -> record -> plan loop over one session.

`TradingSession` owns the runtime state of a single session and wires the pure
engine functions together. It keeps at most one pending trade at a time and
serialises every read-modify-write sequence through a per-session lock, so a
multi-threaded host can share one instance per session.
"""
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import numpy as np

from stakeplan.aligner import AlignmentResult, align_profit
from stakeplan.balance_table import cached_required_balance_table
from stakeplan.config import EngineConfig
from stakeplan.money import round_currency
from stakeplan.planner import next_stake
from stakeplan.recorder import TradeStateError, resolve_trade
from stakeplan.types import (
    CompletedTrade,
    PendingTrade,
    SessionParameters,
    SessionRuntimeState,
)

__all__ = [
    "TradingSession",
    "RecordResult",
    "SessionProgress",
    "SimulationResult",
    "simulate_session",
    "parse_outcomes",
]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordResult:
    ok: bool
    reason: str
    trade: Optional[CompletedTrade] = None


@dataclass(frozen=True)
class SessionProgress:
    completed: int
    total: int
    percentage: float


class TradingSession:
    """
    Drives one session through its planned trades.

    Args:
        params: The session parameters. Fixed for the life of the instance.
        engine: Engine constants.
        clock: Optional callable returning the current time, for tests.
    """

    def __init__(self, params: SessionParameters, engine: Optional[EngineConfig] = None, clock=None):
        self.params = params
        self.engine = engine or EngineConfig()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()

        self.target_profit: float = params.target_profit(
            benchmark_win_rate=self.engine.benchmark_win_rate,
            base_risk_fraction=self.engine.base_risk_fraction,
        )
        self.required_wins: int = params.required_wins if params.is_valid else 0
        self.table: np.ndarray = cached_required_balance_table(params, self.engine)

        self.state = SessionRuntimeState(current_balance=params.capital)
        self.pending: Optional[PendingTrade] = None
        self.trades: List[CompletedTrade] = []
        self._tickets: Dict[str, PendingTrade] = {}

    # ------------------------------------------------------------------
    # Derived figures
    # ------------------------------------------------------------------
    @property
    def target_balance(self) -> float:
        return self.params.capital + self.target_profit

    @property
    def wins_needed(self) -> int:
        return max(0, self.required_wins - self.state.wins)

    @property
    def remaining_trades(self) -> int:
        return max(0, self.params.total_trades - self.state.completed_trades)

    @property
    def net_profit(self) -> float:
        return sum(t.profit_or_loss for t in self.trades)

    @property
    def win_rate(self) -> float:
        if not self.trades:
            return 0.0
        return self.state.wins / len(self.trades) * 100

    def progress(self) -> SessionProgress:
        total = self.params.total_trades
        completed = self.state.completed_trades
        percentage = completed / total * 100 if total > 0 else 0.0
        return SessionProgress(completed=completed, total=total, percentage=percentage)

    def is_target_reached(self) -> bool:
        """Balance at or above the target, once at least one trade has completed."""
        return bool(self.trades) and self.state.current_balance >= self.target_balance

    def is_complete(self) -> bool:
        """True once no further trade should be planned."""
        return self.wins_needed <= 0 or self.remaining_trades <= 0 or self.is_target_reached()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def _plan_locked(self) -> Optional[PendingTrade]:
        if self.pending is not None:
            log.debug("Trade %s is still pending; not planning another", self.pending.trade_id)
            return None
        if self.is_complete():
            return None

        stake = next_stake(
            self.state.current_balance,
            self.remaining_trades,
            self.wins_needed,
            self.params.risk_reward_ratio,
            self.table,
        )
        if stake <= 0:
            log.info(
                "No stake can be justified at balance %.2f (wins_needed=%d, remaining=%d)",
                self.state.current_balance, self.wins_needed, self.remaining_trades,
            )
            return None

        pending = PendingTrade(trade_id=uuid.uuid4().hex, stake=stake, created_at=self._clock())
        self.pending = pending
        self._tickets[pending.trade_id] = pending
        log.debug("Planned trade %s with stake %.2f", pending.trade_id, stake)
        return pending

    def plan_next_trade(self) -> Optional[PendingTrade]:
        """Creates the next pending trade, or returns None when none should exist."""
        with self._lock:
            return self._plan_locked()

    def record_outcome(self, trade_id: str, outcome: str) -> RecordResult:
        """
        Records a win/loss verdict and plans the following trade unless the
        session is complete. Rejected calls leave the session untouched.
        """
        with self._lock:
            ticket = self._tickets.get(trade_id)
            if ticket is None:
                return RecordResult(ok=False, reason=f"Trade {trade_id} not found.")
            try:
                completed, state = resolve_trade(
                    ticket, outcome, self.params.risk_reward_ratio, self.state, self._clock()
                )
            except (TradeStateError, ValueError) as e:
                return RecordResult(ok=False, reason=str(e))

            self._tickets[trade_id] = ticket.model_copy(update={"status": completed.outcome})
            self.trades.append(completed)
            self.state = state
            self.pending = None
            log.info(
                "Trade %s %s: %+.2f, balance %.2f",
                trade_id, completed.outcome, completed.profit_or_loss, state.current_balance,
            )

            if self.is_target_reached():
                log.info("Target balance %.2f reached", self.target_balance)
            else:
                self._plan_locked()
            return RecordResult(ok=True, reason=f"Trade marked as {completed.outcome}", trade=completed)

    def align(self) -> AlignmentResult:
        """Reconciles realised profit with the target by rewriting at most one trade."""
        with self._lock:
            result = align_profit(
                self.trades,
                self.target_profit,
                tolerance=self.engine.alignment_tolerance,
                max_passes=self.engine.max_alignment_passes,
            )
            if result.adjusted_trade_id is not None:
                self.trades = list(result.trades)
                wins = sum(1 for t in self.trades if t.outcome == "won")
                self.state = SessionRuntimeState(
                    wins=wins,
                    completed_trades=len(self.trades),
                    current_balance=round_currency(self.params.capital + self.net_profit),
                )
            return result

    def summary(self) -> Dict[str, float]:
        progress = self.progress()
        return {
            "capital": self.params.capital,
            "target_profit": self.target_profit,
            "target_balance": self.target_balance,
            "required_wins": self.required_wins,
            "current_balance": self.state.current_balance,
            "net_profit": self.net_profit,
            "wins": self.state.wins,
            "completed_trades": progress.completed,
            "total_trades": progress.total,
            "progress_pct": progress.percentage,
            "win_rate": self.win_rate,
            "target_reached": self.is_target_reached(),
        }


# ----------------------------------------------------------------------
# Scripted simulation
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class SimulationResult:
    session: TradingSession
    alignment: Optional[AlignmentResult]
    halted: bool


def parse_outcomes(text: str) -> List[str]:
    """Parses a string like 'WLW' or 'won,lost,won' into outcome names."""
    separated = text.replace(",", " ").split()
    tokens = separated if len(separated) > 1 else list(text.strip())
    mapping = {"w": "won", "won": "won", "l": "lost", "lost": "lost"}
    outcomes = []
    for token in tokens:
        key = token.strip().lower()
        if key not in mapping:
            raise ValueError(f"Unrecognised outcome {token!r}; use W/L or won/lost.")
        outcomes.append(mapping[key])
    return outcomes


def simulate_session(
    params: SessionParameters,
    outcomes: Iterable[str],
    engine: Optional[EngineConfig] = None,
    align: bool = True,
) -> SimulationResult:
    """
    Plays a scripted outcome sequence through a TradingSession.

    Stops when the session completes, the script runs out, or no stake can be
    justified (`halted`). When `align` is set and the session earned its
    required wins, profit is aligned at the end.
    """
    session = TradingSession(params, engine)
    pending = session.plan_next_trade()
    halted = False
    for outcome in outcomes:
        if pending is None:
            halted = not session.is_complete()
            break
        result = session.record_outcome(pending.trade_id, outcome)
        if not result.ok:
            raise ValueError(result.reason)
        pending = session.pending
    else:
        halted = pending is None and not session.is_complete()

    # Only a session that earned its wins is reconciled; a missed target is not a rounding residue.
    earned = session.wins_needed <= 0 or session.is_target_reached()
    alignment = session.align() if align and session.trades and earned else None
    return SimulationResult(session=session, alignment=alignment, halted=halted)
