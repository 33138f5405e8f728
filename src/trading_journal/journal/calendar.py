"""Calendar view: one entry per trading day.

Each day reports how many trades were entered, their summed net P&L (open
trades contribute 0) and the distinct emotion tags seen.  The day's
``emotion`` is the *first* tag encountered in insertion order, not the most
frequent one.
"""

from __future__ import annotations

import re
from collections import OrderedDict
from datetime import datetime, tzinfo
from typing import Iterable

from trading_journal.core.config import resolve_zone
from trading_journal.core.errors import InvalidQueryError
from trading_journal.core.models import CalendarDay, TradeRecord

from .breakdowns import local_time
from .resilience import evaluate_trade

_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


def _add_months(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def resolve_month_window(
    month: str | None,
    *,
    zone: tzinfo | None = None,
    lookback_months: int = 3,
    now: datetime | None = None,
) -> tuple[datetime, datetime | None]:
    """Entry-time window for a calendar request.

    ``month`` (``YYYY-MM``) selects that month as ``[first day, first day of
    next month)`` in ``zone``.  Without a month the window starts
    ``lookback_months`` before ``now`` and is open-ended.

    Raises:
        InvalidQueryError: If ``month`` is not ``YYYY-MM``.
    """
    zone = zone or resolve_zone("UTC")
    if month:
        m = _MONTH_RE.match(month.strip())
        if not m or not 1 <= int(m.group(2)) <= 12:
            raise InvalidQueryError(f"month must be YYYY-MM, got {month!r}")
        year, mon = int(m.group(1)), int(m.group(2))
        start = datetime(year, mon, 1, tzinfo=zone)
        ny, nm = _add_months(year, mon, 1)
        return start, datetime(ny, nm, 1, tzinfo=zone)

    now = (now or datetime.now(zone)).astimezone(zone)
    y, m_ = _add_months(now.year, now.month, -lookback_months)
    # Clamp the day (e.g. 31 May minus 3 months)
    day = now.day
    while True:
        try:
            start = now.replace(year=y, month=m_, day=day)
            break
        except ValueError:
            day -= 1
    return start, None


def build_calendar(
    trades: Iterable[TradeRecord],
    *,
    zone: tzinfo | str | None = None,
) -> list[CalendarDay]:
    """Group trades by local entry date, in date order."""
    if zone is None or isinstance(zone, str):
        zone = resolve_zone(zone or "UTC")

    days: OrderedDict = OrderedDict()
    for trade in trades:
        ev = evaluate_trade(trade)
        key = local_time(trade.timestamp_entry, zone).date()
        entry = days.get(key)
        if entry is None:
            entry = days[key] = {"trades": 0, "pnl": 0.0, "emotions": []}
        entry["trades"] += 1
        entry["pnl"] += ev.net_pnl
        if trade.emotion and trade.emotion not in entry["emotions"]:
            entry["emotions"].append(trade.emotion)

    return [
        CalendarDay(
            date=day,
            trades=e["trades"],
            pnl=round(e["pnl"], 2),
            emotions=e["emotions"],
            emotion=e["emotions"][0] if e["emotions"] else None,
        )
        for day, e in sorted(days.items())
    ]


def in_window(trade: TradeRecord, start: datetime, end: datetime | None) -> bool:
    """Half-open window check on the entry timestamp."""
    if trade.timestamp_entry < start:
        return False
    return end is None or trade.timestamp_entry < end
