"""CLI entry point for the trading journal."""

from __future__ import annotations

import json
from pathlib import Path

import click

from .core.enums import EquityBucket


def _load_trades(path: str) -> list:
    """Read trade records from a JSON list (or ``{"trades": [...]}``)."""
    from .core.models import TradeRecord

    raw = json.loads(Path(path).read_text())
    if isinstance(raw, dict):
        raw = raw.get("trades", [])
    return [TradeRecord.model_validate(item) for item in raw]


@click.group()
def main() -> None:
    """Trading journal metrics service."""


@main.command()
@click.option("--config", default=None, help="Config file path")
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
@click.option("--backend", type=click.Choice(["memory", "sql"]), default=None,
              help="Storage backend override")
def serve(config: str | None, host: str, port: int, backend: str | None) -> None:
    """Run the journal HTTP API."""
    import uvicorn

    from .api.app import create_app
    from .core.config import load_settings
    from .core.errors import ConfigError
    from .observability.logger import setup_logging

    overrides: dict = {}
    if backend:
        overrides["storage"] = {"backend": backend}
    try:
        settings = load_settings(config, overrides)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    setup_logging(settings.observability.log_level, settings.observability.log_format)
    uvicorn.run(create_app(settings=settings), host=host, port=port, log_config=None)


@main.command()
@click.argument("trades_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--initial-balance", default=None, type=float, help="Account size before the first trade")
@click.option("--tz", default="UTC", help="Timezone for day and month bucketing")
@click.option("--equity-bucket", type=click.Choice([b.value for b in EquityBucket]),
              default=EquityBucket.TRADE.value, help="Equity curve granularity")
def stats(trades_file: str, initial_balance: float | None, tz: str, equity_bucket: str) -> None:
    """Print aggregate statistics for a JSON file of trades."""
    from .core.errors import JournalError
    from .journal.aggregation import compute_aggregate_statistics

    try:
        trades = _load_trades(trades_file)
        result = compute_aggregate_statistics(
            trades,
            zone=tz,
            initial_balance=initial_balance,
            equity_bucket=EquityBucket(equity_bucket),
        )
    except (JournalError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(json.dumps(result.model_dump(mode="json"), indent=2))


@main.command()
@click.argument("trades_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--month", default=None, help="Month to show (YYYY-MM)")
@click.option("--tz", default="UTC", help="Timezone for day bucketing")
def calendar(trades_file: str, month: str | None, tz: str) -> None:
    """Print calendar days for a JSON file of trades."""
    from .core.config import resolve_zone
    from .core.errors import JournalError
    from .journal.calendar import build_calendar, in_window, resolve_month_window

    try:
        zone = resolve_zone(tz)
        trades = _load_trades(trades_file)
        if month:
            start, end = resolve_month_window(month, zone=zone)
            trades = [t for t in trades if in_window(t, start, end)]
        days = build_calendar(trades, zone=zone)
    except (JournalError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(json.dumps([d.model_dump(mode="json") for d in days], indent=2))


if __name__ == "__main__":
    main()
