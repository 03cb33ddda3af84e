"""
Tests for CLI interface.
"""
from pathlib import Path

import yaml
from typer.testing import CliRunner

from cli import app

# Default CliRunner mixes stderr and stdout into the .output attribute,
# which is what we want for testing console output.
runner = CliRunner()


FULL_CONFIG_DICT = {
    "session": {"name": "test_cli_session", "capital": 1000, "total_trades": 10, "accuracy": 50, "risk_reward_ratio": 3},
    "engine": {"benchmark_win_rate": 0.6, "base_risk_fraction": 0.06, "alignment_tolerance": 0.01, "max_alignment_passes": 3},
    "reporting": {"output_dir": "", "output_formats": ["json", "markdown", "csv"]},
}


def create_temp_config(tmp_path: Path) -> Path:
    """Creates a temporary, valid YAML config file for testing."""
    config_path = tmp_path / "test_config.yaml"
    config_dict = {k: dict(v) for k, v in FULL_CONFIG_DICT.items()}
    config_dict["reporting"]["output_dir"] = str(tmp_path / "run")
    config_path.write_text(yaml.dump(config_dict))
    return config_path


def test_cli_help() -> None:
    """Test CLI --help flag."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Stake planning and profit alignment" in result.output


def test_cli_with_missing_config_file() -> None:
    """Test that commands exit if the config file does not exist."""
    result = runner.invoke(app, ["target", "--config", "nonexistent.yaml"])
    assert result.exit_code == 2
    assert "does not exist" in result.output


def test_cli_invalid_config_exits(tmp_path: Path) -> None:
    config_path = tmp_path / "bad.yaml"
    config_path.write_text(yaml.dump({"engine": {}}))
    result = runner.invoke(app, ["target", "--config", str(config_path)])
    assert result.exit_code == 1
    assert "Configuration Error" in result.output


def test_cli_target_command(tmp_path: Path) -> None:
    result = runner.invoke(app, ["target", "--config", str(create_temp_config(tmp_path))])
    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    assert "Target profit" in result.output
    assert "Required wins: 5 of 10" in result.output


def test_cli_table_command_writes_csv(tmp_path: Path) -> None:
    csv_path = tmp_path / "table.csv"
    result = runner.invoke(
        app, ["table", "--config", str(create_temp_config(tmp_path)), "--csv", str(csv_path)]
    )
    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    assert csv_path.exists()
    assert "wins_needed" in csv_path.read_text().splitlines()[0]


def test_cli_simulate_command_runs(tmp_path: Path) -> None:
    config_path = create_temp_config(tmp_path)
    result = runner.invoke(app, ["simulate", "--config", str(config_path), "--outcomes", "WLWWLWW"])

    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    assert "Simulate command finished" in result.output
    assert (tmp_path / "run" / "summary.json").exists()
    assert (tmp_path / "run" / "trade_ledger.csv").exists()


def test_cli_simulate_rejects_bad_outcomes(tmp_path: Path) -> None:
    config_path = create_temp_config(tmp_path)
    result = runner.invoke(app, ["simulate", "--config", str(config_path), "--outcomes", "WXL"])
    assert result.exit_code == 1
    assert "Unrecognised outcome" in result.output


def test_cli_simulate_no_align_skips_alignment(mocker, tmp_path: Path) -> None:
    m_reports = mocker.patch("cli.generate_all_reports")
    config_path = create_temp_config(tmp_path)
    result = runner.invoke(
        app, ["simulate", "--config", str(config_path), "--outcomes", "WWWWW", "--no-align"]
    )

    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    m_reports.assert_called_once()
    simulation = m_reports.call_args.args[1]
    assert simulation.alignment is None
    assert "Alignment:" not in result.output


def test_cli_non_numeric_engine_value_is_a_config_error(tmp_path: Path) -> None:
    config_path = tmp_path / "bad.yaml"
    config_dict = {k: dict(v) for k, v in FULL_CONFIG_DICT.items()}
    config_dict["engine"]["benchmark_win_rate"] = "high"
    config_path.write_text(yaml.dump(config_dict))
    result = runner.invoke(app, ["target", "--config", str(config_path)])
    assert result.exit_code == 1
    assert "Configuration Error" in result.output
