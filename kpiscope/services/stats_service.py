"""
Summary statistics for a single KPI time series.

Never raises for record content: missing or non-numeric values count as 0,
and empty or single-point series produce zeroed statistics.
"""
import math
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from kpiscope.schemas.kpi import KPIStatsSummary, StatCard


def parse_time(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp (date-only or date-time).

    Returns None if the value can't be parsed. Naive values are kept naive;
    use _sort_key for ordering.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def _sort_key(record: Mapping[str, Any]) -> tuple[int, float]:
    parsed = parse_time(record.get("time"))
    if parsed is None:
        # Unparseable times go last, keeping their relative order
        return (1, 0.0)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (0, parsed.timestamp())


def coerce_value(value: Any) -> float:
    """Coerce a raw KPI value to float; anything unusable or non-finite becomes 0."""
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        # OverflowError: JSON integers beyond float range
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _fmt_day(value: Any) -> str:
    parsed = parse_time(value)
    if parsed is None:
        return str(value) if value is not None else ""
    return f"{parsed:%b} {parsed.day}"


def _fmt_day_time(value: Any) -> str:
    parsed = parse_time(value)
    if parsed is None:
        return str(value) if value is not None else ""
    return f"{parsed:%b} {parsed.day}, {parsed:%H:%M}"


def range_label(series: list[Mapping[str, Any]]) -> str:
    """'Jan 1 – Jan 3' for several points, 'Jan 1, 10:30' for one, '' for none."""
    n = len(series)
    if n > 1:
        return f"{_fmt_day(series[0].get('time'))} – {_fmt_day(series[-1].get('time'))}"
    if n == 1:
        return _fmt_day_time(series[0].get("time"))
    return ""


def summarize(
    records: Iterable[Mapping[str, Any]],
    kpi_key: str,
) -> tuple[list[Mapping[str, Any]], KPIStatsSummary]:
    """
    Sort records by time and compute trend, extrema and dispersion for one KPI.

    Args:
        records: KPI records, each with a "time" and one value per KPI key
        kpi_key: KPI to summarize

    Returns:
        Tuple of (records sorted ascending by time, KPIStatsSummary)
    """
    # sorted() is stable, so equal times keep their input order
    series = sorted(records, key=_sort_key)
    values = [coerce_value(r.get(kpi_key)) for r in series]
    n = len(values)

    first = values[0] if n else 0.0
    last = values[-1] if n else 0.0
    change = last - first
    change_pct = change / first * 100 if first != 0 else 0.0
    average = sum(values) / n if n else 0.0

    # Strict comparisons: on ties the earliest point wins
    minimum = maximum = first
    minimum_time = maximum_time = series[0].get("time") if n else None
    for record, value in zip(series, values):
        if value < minimum:
            minimum = value
            minimum_time = record.get("time")
        if value > maximum:
            maximum = value
            maximum_time = record.get("time")

    if n > 1:
        std_dev = math.sqrt(sum((v - average) ** 2 for v in values) / (n - 1))
    else:
        std_dev = 0.0

    summary = KPIStatsSummary(
        kpi=kpi_key,
        count=n,
        current=last,
        change=change,
        change_pct=change_pct,
        direction="up" if change >= 0 else "down",
        average=average,
        minimum=minimum,
        minimum_time=None if minimum_time is None else str(minimum_time),
        maximum=maximum,
        maximum_time=None if maximum_time is None else str(maximum_time),
        std_dev=std_dev,
        range_label=range_label(series),
    )
    return series, summary


def stat_cards(summary: KPIStatsSummary) -> list[StatCard]:
    """Footer cards shown under a KPI chart; empty when there is no data."""
    if summary.count == 0:
        return []

    def fmt2(x: float) -> str:
        return f"{x:.2f}"

    return [
        StatCard(label="Current", value=fmt2(summary.current)),
        StatCard(
            label="Change",
            value=f"{fmt2(abs(summary.change_pct))}%",
            direction=summary.direction,
        ),
        StatCard(label="Average", value=fmt2(summary.average)),
        StatCard(label="Min", value=fmt2(summary.minimum), sub=_fmt_day(summary.minimum_time)),
        StatCard(label="Max", value=fmt2(summary.maximum), sub=_fmt_day(summary.maximum_time)),
        StatCard(label="Std Dev", value=fmt2(summary.std_dev)),
    ]
