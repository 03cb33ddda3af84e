"""Tests for the report writers."""
import io
import json
from pathlib import Path

import pandas as pd
import pytest
from rich.console import Console

from stakeplan.config import Config, EngineConfig, ReportingConfig, SessionConfig
from stakeplan.reporting import _to_json_serializable, generate_all_reports
from stakeplan.session import SimulationResult, simulate_session


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    return Config(
        session=SessionConfig(
            name="test_reporting_session", capital=1000, total_trades=10, accuracy=50, risk_reward_ratio=3
        ),
        engine=EngineConfig(),
        reporting=ReportingConfig(output_dir=tmp_path, output_formats=["csv", "json", "markdown"]),
    )


@pytest.fixture
def simulation(test_config: Config) -> SimulationResult:
    return simulate_session(test_config.session.parameters, ["won", "lost", "won", "won", "lost", "won", "won"])


def test_generate_all_reports(test_config: Config, simulation: SimulationResult, tmp_path: Path) -> None:
    console = Console(file=io.StringIO())
    generate_all_reports(test_config, simulation, tmp_path, console)

    assert (tmp_path / "trade_ledger.csv").exists()
    assert (tmp_path / "summary.json").exists()
    assert (tmp_path / "summary.md").exists()

    with (tmp_path / "summary.json").open("r") as f:
        summary_data = json.load(f)
    assert summary_data["session_name"] == "test_reporting_session"
    assert summary_data["session"]["required_wins"] == 5
    assert summary_data["metrics"]["total_trades"] == len(simulation.session.trades)
    assert "alignment" in summary_data

    ledger = pd.read_csv(tmp_path / "trade_ledger.csv")
    assert len(ledger) == len(simulation.session.trades)
    assert ledger["balance"].iloc[-1] == pytest.approx(simulation.session.state.current_balance)

    md = (tmp_path / "summary.md").read_text()
    assert md.startswith("# Session Summary: test_reporting_session")
    assert "## Alignment" in md
    assert "All reports generated." in console.file.getvalue()


def test_only_requested_formats_are_written(test_config: Config, simulation: SimulationResult, tmp_path: Path) -> None:
    config = Config(
        session=test_config.session,
        reporting=ReportingConfig(output_dir=tmp_path, output_formats=["json"]),
    )
    generate_all_reports(config, simulation, tmp_path, Console(file=io.StringIO()))

    assert (tmp_path / "summary.json").exists()
    assert not (tmp_path / "summary.md").exists()
    assert not (tmp_path / "trade_ledger.csv").exists()


def test_unbounded_profit_factor_is_written_as_null(test_config: Config, tmp_path: Path) -> None:
    result = simulate_session(test_config.session.parameters, ["won"] * 5)
    generate_all_reports(test_config, result, tmp_path, Console(file=io.StringIO()))

    with (tmp_path / "summary.json").open("r") as f:
        summary_data = json.load(f)
    assert summary_data["metrics"]["profit_factor"] is None


def test_to_json_serializable_converts_nested_values() -> None:
    data = {"path": Path("runs"), "values": [float("inf"), 1.5], "nested": {"flag": True}}
    assert _to_json_serializable(data) == {"path": "runs", "values": [None, 1.5], "nested": {"flag": True}}
