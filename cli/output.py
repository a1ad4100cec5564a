"""
CLI output formatting utilities.

Supports multiple output formats:
- rich: Rich formatted terminal output (default)
- json: Machine-readable JSON output
- table: Flat signal summary table
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from smcsignals.schemas import AnalysisReport

console = Console()


class OutputFormat(str, Enum):
    """Output format options."""

    RICH = "rich"
    JSON = "json"
    TABLE = "table"


DIRECTION_COLORS = {
    "BUY": "green",
    "BULLISH": "green",
    "SELL": "red",
    "BEARISH": "red",
    "WAIT": "yellow",
    "NEUTRAL": "yellow",
}


def _colored(value: str) -> str:
    color = DIRECTION_COLORS.get(value, "white")
    return f"[{color}]{value}[/{color}]"


def output_json(data: Union[Dict, List, Any], indent: int = 2) -> None:
    """Output data as formatted JSON."""
    if hasattr(data, "model_dump_json"):
        json_str = data.model_dump_json(indent=indent)
    else:
        json_str = json.dumps(data, indent=indent, default=str)

    console.print_json(json_str)


def output_table(
    data: Union[Dict, List[Dict]],
    title: Optional[str] = None,
    columns: Optional[List[str]] = None,
) -> None:
    """Output data as a rich table."""
    table = Table(box=box.ROUNDED, title=title)

    if isinstance(data, dict):
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for key, value in data.items():
            table.add_row(str(key), str(value))
    elif isinstance(data, list) and len(data) > 0:
        keys = columns or list(data[0].keys())
        for col in keys:
            table.add_column(str(col))
        for item in data:
            table.add_row(*[str(item.get(col, "")) for col in keys])
    else:
        console.print("[yellow]No data to display[/yellow]")
        return

    console.print(table)


def _signal_panel(report: AnalysisReport, title: str) -> Panel:
    signal = report.signal
    content = (
        f"[bold]Signal:[/bold] {_colored(signal.direction)}\n"
        f"[bold]Confidence:[/bold] {signal.confidence}%\n"
        f"[bold]Status:[/bold] {report.status}\n"
    )
    if signal.direction != "WAIT":
        content += (
            f"\n[bold]Entry:[/bold] {signal.entry}\n"
            f"[bold]Stop Loss:[/bold] {signal.stop_loss}\n"
            f"[bold]TP1 / TP2 / TP3:[/bold] {signal.tp1} / {signal.tp2} / {signal.tp3}\n"
            f"[bold]Risk/Reward:[/bold] 1:{signal.risk_reward:.2f}\n"
        )
    content += f"\n[bold]Rationale:[/bold] {signal.rationale}"
    return Panel(content, title=title, border_style="cyan")


def _market_table(report: AnalysisReport) -> Table:
    table = Table(box=box.SIMPLE, title="Market")
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    ind = report.indicators
    table.add_row("Current Price", f"{report.current_price}")
    table.add_row("EMA 20 / 50 / 200", f"{ind.ema20:.5f} / {ind.ema50:.5f} / {ind.ema200:.5f}")
    table.add_row("RSI", f"{ind.rsi:.1f}")
    table.add_row("ATR", f"{ind.atr:.5f}")
    table.add_row("MACD", f"{ind.macd.histogram:.5f} ({ind.macd.trending})")
    table.add_row("Volatility", f"{ind.volatility}")

    structure = report.structure
    table.add_row("Structure", _colored(structure.trend))
    table.add_row("BOS / CHoCH", f"{len(structure.breaks)} / {len(structure.reversals)}")

    bias = report.bias
    table.add_row(
        "Bias",
        f"{_colored(bias.direction)} {bias.strength}% "
        f"({bias.bullish_points} bull / {bias.bearish_points} bear)",
    )

    levels = report.levels
    table.add_row("Support / Resistance", f"{levels.support} / {levels.resistance}")
    table.add_row("Price Position", f"{levels.price_position}%")

    liquidity = report.liquidity
    if liquidity is not None:
        table.add_row(
            "Session Range",
            f"{liquidity.session_low} - {liquidity.session_high} ({liquidity.zone})",
        )
        table.add_row("Liquidity Sweep", "yes" if liquidity.sweep else "no")
    return table


def _confluence_table(report: AnalysisReport) -> Table:
    confluence = report.confluence
    table = Table(
        box=box.ROUNDED,
        title=f"Confluence {confluence.confidence}% ({confluence.direction})",
    )
    table.add_column("Factor", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Detail")
    for factor in confluence.breakdown:
        table.add_row(factor.factor, f"{factor.score:g}/{factor.max:g}", factor.detail)
    return table


def _zones_table(report: AnalysisReport) -> Table:
    table = Table(box=box.SIMPLE, title="Zones")
    table.add_column("Kind", style="cyan")
    table.add_column("Type")
    table.add_column("Bottom", justify="right")
    table.add_column("Top", justify="right")
    table.add_column("State")

    for zone in report.zones:
        state = "mitigated" if zone.mitigated else "active" if zone.active else "-"
        table.add_row("Order Block", _colored(zone.type), f"{zone.bottom}", f"{zone.top}", state)
    for gap in report.gaps:
        state = "filled" if gap.filled else "active" if gap.active else "-"
        table.add_row("FVG", _colored(gap.type), f"{gap.bottom}", f"{gap.top}", state)
    for pool in report.liquidity_pools:
        table.add_row("Liquidity", pool.side, f"{pool.level:.5f}", f"{pool.level:.5f}", f"{pool.count} swing(s)")
    return table


def format_analysis_report(
    report: AnalysisReport,
    output_format: OutputFormat = OutputFormat.RICH,
    title: str = "SMC Analysis",
) -> None:
    """Format a pipeline report."""
    if output_format == OutputFormat.JSON:
        output_json(report)
        return

    if output_format == OutputFormat.TABLE:
        signal = report.signal
        flat = {
            "status": report.status,
            "signal": signal.direction,
            "confidence": f"{signal.confidence}%",
            "entry": signal.entry,
            "stop_loss": signal.stop_loss,
            "tp1": signal.tp1,
            "tp2": signal.tp2,
            "tp3": signal.tp3,
            "risk_reward": signal.risk_reward,
        }
        output_table(flat, title=title)
        return

    console.print(_signal_panel(report, title))
    if report.status != "OK":
        if report.error:
            console.print(f"[red]{report.error}[/red]")
        return

    console.print(_market_table(report))
    console.print(_confluence_table(report))
    if report.zones or report.gaps or report.liquidity_pools:
        console.print(_zones_table(report))
