"""
SMC Signals command line entry point.

Commands:
- analyze: run the signal pipeline over a CSV or JSON candle file
- config-show: print the effective analysis configuration as YAML
"""

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd
import typer
import yaml

from smcsignals.config import AnalysisConfig, get_default_config, load_analysis_config
from smcsignals.models import AnalysisStatus, Candle, InvalidCandleError, candles_from_dataframe
from smcsignals.pipeline import SignalPipeline
from smcsignals.schemas import to_report
from cli.output import OutputFormat, console, format_analysis_report

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

app = typer.Typer(
    name="smc-signals",
    help="SMC Signals CLI: smart money concepts signal analysis over OHLCV files",
    add_completion=True,
)


def configure_logging(level: str) -> None:
    """Configure root logging for a CLI run."""
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)


def load_candles(path: Path) -> List[Candle]:
    """
    Load candles from a CSV or JSON file.

    CSV needs open/high/low/close columns (time and volume optional, the row
    index is used as time otherwise). JSON must be a list of candle records.
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path)
    elif suffix == ".json":
        df = pd.read_json(path, orient="records", convert_dates=False)
    else:
        raise ValueError(f"Unsupported candle file type: {suffix} (use .csv or .json)")
    return candles_from_dataframe(df)


def _load_config(config_file: Optional[Path]) -> AnalysisConfig:
    if config_file is None:
        return get_default_config()
    try:
        return load_analysis_config(str(config_file))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Config error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def analyze(
    path: Path = typer.Argument(..., help="CSV or JSON file with OHLCV candles, oldest first"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Analysis config file (YAML or JSON)"
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.RICH, "--format", "-f", help="Output format: rich, json or table"
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", envvar="SMC_SIGNALS_LOG_LEVEL", help="Logging level"
    ),
):
    """
    Run the signal pipeline over a candle file.

    Exits with code 1 when the file cannot be read or the candles are invalid.
    """
    configure_logging(log_level)
    config = _load_config(config_file)

    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    try:
        candles = load_candles(path)
    except (InvalidCandleError, ValueError) as e:
        console.print(f"[red]Could not load candles: {e}[/red]")
        raise typer.Exit(1)

    result = SignalPipeline(config).run(candles)
    format_analysis_report(to_report(result), output_format, title=f"SMC Analysis: {path.name}")

    if result.status in (AnalysisStatus.INVALID_INPUT, AnalysisStatus.ERROR):
        raise typer.Exit(1)


@app.command("config-show")
def config_show(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file to load instead of the defaults"
    ),
):
    """Print the effective analysis config as YAML."""
    config = _load_config(config_file)
    typer.echo(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False))


if __name__ == "__main__":
    app()
