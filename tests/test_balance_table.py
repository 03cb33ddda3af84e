"""
Tests for the required-balance table.
"""
import numpy as np
import pytest

from stakeplan.balance_table import (
    build_required_balance_table,
    cached_required_balance_table,
    table_to_frame,
)
from stakeplan.config import EngineConfig
from stakeplan.types import SessionParameters


@pytest.fixture
def even_money_table() -> np.ndarray:
    """Target 1000, 1:1 RR, 3 trades, 2 wins needed."""
    return build_required_balance_table(1000.0, 1.0, 3, 2)


def test_table_shape(even_money_table: np.ndarray) -> None:
    assert even_money_table.shape == (3, 4)


def test_base_row_is_target(even_money_table: np.ndarray) -> None:
    assert np.all(even_money_table[0] == 1000.0)


def test_hand_computed_cells(even_money_table: np.ndarray) -> None:
    """
    With R = 1 each cell is the target times the chance of at least `w`
    heads in `r` fair coin flips.
    """
    req = even_money_table
    assert req[1, 1] == pytest.approx(500.0)
    assert req[1, 2] == pytest.approx(750.0)
    assert req[1, 3] == pytest.approx(875.0)
    assert req[2, 2] == pytest.approx(250.0)
    assert req[2, 3] == pytest.approx(500.0)


def test_diagonal_must_win_every_trade() -> None:
    req = build_required_balance_table(2048.0, 3.0, 5, 5)
    for w in range(1, 6):
        assert req[w, w] == pytest.approx(2048.0 / 4 ** w)


def test_unreachable_cells_are_infinite(even_money_table: np.ndarray) -> None:
    assert np.isinf(even_money_table[1, 0])
    assert np.isinf(even_money_table[2, 0])
    assert np.isinf(even_money_table[2, 1])


def test_finite_iff_enough_trades_remain() -> None:
    params = SessionParameters(capital=1000, total_trades=10, accuracy=50, risk_reward_ratio=3)
    req = cached_required_balance_table(params, EngineConfig())
    assert req.shape == (6, 11)
    for w in range(req.shape[0]):
        for r in range(req.shape[1]):
            assert np.isfinite(req[w, r]) == (r >= w)


def test_table_is_read_only(even_money_table: np.ndarray) -> None:
    with pytest.raises(ValueError):
        even_money_table[1, 1] = 0.0


@pytest.mark.parametrize(
    "target, rr, trades, wins",
    [
        (1000.0, 3.0, 0, 0),
        (1000.0, 0.0, 10, 5),
        (1000.0, -1.0, 10, 5),
        (1000.0, 3.0, 10, 11),
        (1000.0, 3.0, 10, -1),
        (float("inf"), 3.0, 10, 5),
    ],
)
def test_invalid_inputs_give_empty_table(target, rr, trades, wins) -> None:
    assert build_required_balance_table(target, rr, trades, wins).shape == (0, 0)


def test_zero_required_wins_is_a_single_row() -> None:
    req = build_required_balance_table(1500.0, 2.0, 4, 0)
    assert req.shape == (1, 5)
    assert np.all(req == 1500.0)


def test_cache_returns_same_table_for_same_configuration() -> None:
    engine = EngineConfig()
    first = cached_required_balance_table(
        SessionParameters(capital=1000, total_trades=8, accuracy=50, risk_reward_ratio=2), engine
    )
    second = cached_required_balance_table(
        SessionParameters(capital=1000, total_trades=8, accuracy=50, risk_reward_ratio=2), engine
    )
    changed = cached_required_balance_table(
        SessionParameters(capital=1000, total_trades=8, accuracy=50, risk_reward_ratio=2.5), engine
    )
    assert first is second
    assert changed is not first


def test_cache_gives_empty_table_for_invalid_session() -> None:
    params = SessionParameters(capital=0, total_trades=10, accuracy=50, risk_reward_ratio=3)
    assert cached_required_balance_table(params, EngineConfig()).size == 0


def test_table_to_frame_labels_axes(even_money_table: np.ndarray) -> None:
    frame = table_to_frame(even_money_table)
    assert frame.index.name == "wins_needed"
    assert frame.columns.name == "trades_remaining"
    assert frame.loc[2, 3] == pytest.approx(500.0)


def test_table_to_frame_empty() -> None:
    assert table_to_frame(np.empty((0, 0))).empty


def test_cells_are_rounded_up_to_the_cent() -> None:
    req = build_required_balance_table(1000.0, 2.0, 4, 2)
    # 1000 / 3 = 333.333..., which must not round down.
    assert req[1, 1] == 333.34
    finite = req[np.isfinite(req)]
    assert np.allclose(finite * 100, np.round(finite * 100), rtol=0, atol=1e-6)
