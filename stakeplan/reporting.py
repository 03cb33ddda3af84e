"""
Generating output reports from a simulated session.
"""
import json
from pathlib import Path

import numpy as np
import pandas as pd
from rich.console import Console

from stakeplan.config import Config
from stakeplan.metrics import ledger_frame, session_metrics
from stakeplan.session import SimulationResult

__all__ = ["generate_all_reports"]


def _to_json_serializable(data):
    """Recursively converts non-serializable types in a dictionary."""
    if isinstance(data, dict):
        return {k: _to_json_serializable(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_to_json_serializable(i) for i in data]
    if isinstance(data, (Path, pd.Timestamp)):
        return str(data)
    if data is None:
        return None
    # Convert numpy types to native Python types
    if isinstance(data, np.integer):
        return int(data)
    if isinstance(data, (np.floating, float)):
        value = float(data)
        # JSON has no infinity; an unbounded profit factor is written as null.
        return value if np.isfinite(value) else None
    if isinstance(data, np.bool_):
        return bool(data)
    return data


# impure
def _generate_trade_ledger_csv(ledger: pd.DataFrame, output_dir: Path) -> None:
    """Generates a CSV file with all trade details."""
    if not ledger.empty:
        ledger.to_csv(output_dir / "trade_ledger.csv", index=False)


def _build_summary(result: SimulationResult, config: Config, ledger: pd.DataFrame) -> dict:
    session = result.session
    summary = {
        "session_name": config.session.name,
        "session": session.summary(),
        "halted": result.halted,
        "metrics": session_metrics(ledger, session.params.capital),
    }
    if result.alignment is not None:
        summary["alignment"] = {
            "adjusted_trade_id": result.alignment.adjusted_trade_id,
            "passes": result.alignment.passes,
            "residual": result.alignment.residual,
            "reconciled": result.alignment.reconciled,
            "reason": result.alignment.reason,
        }
    return _to_json_serializable(summary)


# impure
def _generate_summary_json(summary: dict, output_dir: Path) -> None:
    """Generates a JSON file with summary metrics."""
    with (output_dir / "summary.json").open("w") as f:
        json.dump(summary, f, indent=2)


# impure
def _generate_summary_markdown(summary: dict, output_dir: Path) -> None:
    """Generates a Markdown file with a human-readable summary."""
    md = f"# Session Summary: {summary['session_name']}\n\n"
    md += "## Targets\n\n"
    for key in ["capital", "target_profit", "target_balance", "required_wins"]:
        md += f"- **{key}**: {summary['session'][key]}\n"

    md += "\n## Key Metrics\n\n"
    key_metrics = [
        "total_trades", "win_rate", "net_profit", "profit_factor",
        "max_consecutive_losses", "max_drawdown",
    ]
    for metric in key_metrics:
        value = summary["metrics"].get(metric)
        if isinstance(value, float):
            md += f"- **{metric}**: {value:.2f}\n"
        else:
            md += f"- **{metric}**: {value}\n"

    alignment = summary.get("alignment")
    if alignment:
        md += "\n## Alignment\n\n"
        md += f"- {alignment['reason']}\n"
        md += f"- **residual**: {alignment['residual']:.2f}\n"

    (output_dir / "summary.md").write_text(md)


# impure
def generate_all_reports(
    config: Config,
    result: SimulationResult,
    run_dir: Path,
    console: Console,
) -> None:
    """
    Orchestrates the generation of all output reports.
    #impure: Writes to the filesystem.
    """
    session = result.session
    ledger = ledger_frame(session.trades, session.params.capital)
    summary = _build_summary(result, config, ledger)
    formats = config.reporting.output_formats

    if "csv" in formats:
        console.print("Generating trade ledger CSV...")
        _generate_trade_ledger_csv(ledger, run_dir)

    if "json" in formats:
        console.print("Generating summary JSON...")
        _generate_summary_json(summary, run_dir)

    if "markdown" in formats:
        console.print("Generating summary Markdown...")
        _generate_summary_markdown(summary, run_dir)

    console.print("All reports generated.")
