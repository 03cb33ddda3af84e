"""
CLI entry point for the stakeplan application.
"""
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from stakeplan.balance_table import cached_required_balance_table, table_to_frame
from stakeplan.config import Config, load_config
from stakeplan.reporting import generate_all_reports
from stakeplan.session import parse_outcomes, simulate_session

# Console is created once and passed down.
# Log to stderr to separate from potential data output to stdout.
app = typer.Typer(pretty_exceptions_show_locals=False, help="Stake planning and profit alignment for trading sessions.")
console = Console(stderr=True)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")):
    """Stake planning and profit alignment for trading sessions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config_or_exit(config_path: Path) -> Config:
    """Helper to load config and exit on failure."""
    try:
        return load_config(config_path)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def target(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
):
    """Show the target profit and required wins for the configured session."""
    config = _load_config_or_exit(config_path)
    params = config.session.parameters
    if not params.is_valid:
        console.print("[yellow]Session parameters are out of range; no target applies.[/yellow]")

    profit = params.target_profit(
        benchmark_win_rate=config.engine.benchmark_win_rate,
        base_risk_fraction=config.engine.base_risk_fraction,
    )
    console.print(f"Session: [bold]{config.session.name}[/bold]")
    console.print(f"Target profit: [green]{profit:,.2f}[/green]")
    console.print(f"Target balance: {params.capital + profit:,.2f}")
    console.print(f"Required wins: {params.required_wins} of {params.total_trades}")


@app.command()
def table(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    csv_path: Optional[Path] = typer.Option(None, "--csv", help="Also write the table to this CSV file."),
):
    """Render the required-balance table for the configured session."""
    config = _load_config_or_exit(config_path)
    frame = table_to_frame(cached_required_balance_table(config.session.parameters, config.engine))
    if frame.empty:
        console.print("[yellow]Warning: Session parameters give an empty table.[/yellow]")
        raise typer.Exit()

    grid = Table(title=f"Required balance: {config.session.name}")
    grid.add_column("wins \\ left", justify="right")
    for remaining in frame.columns:
        grid.add_column(str(remaining), justify="right")
    for wins_needed, row in frame.iterrows():
        grid.add_row(str(wins_needed), *("∞" if v == float("inf") else f"{v:,.2f}" for v in row))
    console.print(grid)

    if csv_path is not None:
        frame.to_csv(csv_path)
        console.print(f"Table written to [cyan]{csv_path}[/cyan]")


@app.command()
def simulate(
    config_path: Path = typer.Option(
        ..., "--config", "-c", help="Path to the YAML configuration file.", exists=True
    ),
    outcomes: str = typer.Option(..., "--outcomes", "-o", help="Outcome script, e.g. 'WLWWL' or 'won,lost'."),
    no_align: bool = typer.Option(False, "--no-align", help="Skip profit alignment at the end."),
):
    """Play a scripted sequence of outcomes through a session and write reports."""
    config = _load_config_or_exit(config_path)
    try:
        script = parse_outcomes(outcomes)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    try:
        console.rule("[bold]1. Simulating Session[/bold]")
        result = simulate_session(config.session.parameters, script, config.engine, align=not no_align)
        session = result.session

        ledger = Table(title="Trades")
        for column in ["#", "outcome", "investment", "profit/loss", "balance"]:
            ledger.add_column(column, justify="right")
        balance = session.params.capital
        for i, trade in enumerate(session.trades, start=1):
            balance += trade.profit_or_loss
            ledger.add_row(
                str(i), trade.outcome, f"{trade.investment:,.2f}",
                f"{trade.profit_or_loss:+,.2f}", f"{balance:,.2f}",
            )
        console.print(ledger)
        console.print(
            f"Balance {session.state.current_balance:,.2f} against target {session.target_balance:,.2f}"
        )
        if result.halted:
            console.print("[yellow]Session halted: no stake could be justified.[/yellow]")
        if result.alignment is not None:
            colour = "green" if result.alignment.reconciled else "yellow"
            console.print(f"[{colour}]Alignment: {result.alignment.reason}[/{colour}]")

        console.rule("[bold]2. Generating Reports[/bold]")
        run_dir = Path(config.reporting.output_dir)
        run_dir.mkdir(parents=True, exist_ok=True)
        console.print(f"Run artifacts will be saved to: [cyan]{run_dir}[/cyan]")
        generate_all_reports(config, result, run_dir, console)

    except (OSError, ValueError) as e:
        console.print(f"[bold red]An unexpected error occurred during the simulation:[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print("[bold green]Simulate command finished.[/bold green]")


if __name__ == "__main__":
    app()
