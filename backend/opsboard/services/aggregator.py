"""
Reporting aggregator.

Pure functions that turn already-fetched row collections (leads, emails,
invoices, transactions, patients, appointments) into the counts, totals,
and ordered series the dashboards render.

Rules every function here follows:
- No I/O and no module state; the same input always yields the same output.
- Rows may be mappings or objects (decoded records, ORM rows); enum
  values are compared by their value.
- Data problems (missing fields, nulls, bad timestamps, dangling weak
  references) never raise; they fall back to 0, "Unknown", or None.
- Only invalid static parameters raise AggregationParameterError.
"""

import enum
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from ..core.exceptions import AggregationParameterError


Selector = Union[str, Callable[[Any], Any]]

AGGREGATIONS = ("count", "sum")
WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
DEFAULT_KEY = "Unknown"


class CumulativePoint(NamedTuple):
    """One day of a running-total series."""
    day: str
    value: Any
    running_total: Any


class WeakJoin(NamedTuple):
    """A row paired with its parent, or None when the reference does not resolve."""
    row: Any
    parent: Any


# =============================================================================
# Field Access & Coercion
# =============================================================================

def get_field(row: Any, name: str, default: Any = None) -> Any:
    """Read a field from a mapping or an object."""
    if isinstance(row, Mapping):
        return row.get(name, default)
    return getattr(row, name, default)


def _select(row: Any, selector: Selector) -> Any:
    if callable(selector):
        return selector(row)
    return get_field(row, selector)


def plain(value: Any) -> Any:
    """Unwrap enum members to their stored value."""
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _hashable(value: Any) -> bool:
    try:
        hash(value)
    except TypeError:
        return False
    return True


def to_decimal(value: Any) -> Decimal:
    """
    Convert an amount to Decimal without float drift.

    Floats go through their shortest repr, so 0.1 becomes Decimal("0.1").
    Anything missing, non-numeric, or non-finite is treated as zero.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            return Decimal(0)
    else:
        return Decimal(0)

    if not result.is_finite():
        return Decimal(0)
    return result


def to_utc_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp into an aware UTC datetime.

    Accepts datetimes, dates, and ISO-8601 strings (a trailing "Z" is allowed).
    Naive values are taken to be UTC. Returns None for anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_day(value: Any) -> Optional[date]:
    """UTC calendar day of a timestamp, or None."""
    moment = to_utc_datetime(value)
    return moment.date() if moment else None


def day_key(moment: datetime) -> str:
    return moment.date().isoformat()


def month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


# =============================================================================
# Counts & Sums
# =============================================================================

def count_by_status(
    rows: Iterable[Any],
    status_field: str,
    known_statuses: Iterable[Any],
) -> Dict[Any, int]:
    """
    Count rows per status, zero-filling every known status.

    Statuses outside known_statuses are not counted. Key order follows
    known_statuses so callers never need to check for missing keys.

    Args:
        rows: Any row collection
        status_field: Field holding the status
        known_statuses: Full status vocabulary (strings or enum members)

    Returns:
        Mapping of status value to count
    """
    counts = {plain(status): 0 for status in known_statuses}
    for row in rows:
        status = plain(get_field(row, status_field))
        if _hashable(status) and status in counts:
            counts[status] += 1
    return counts


def sum_amount_where(
    rows: Iterable[Any],
    predicate: Optional[Callable[[Any], bool]] = None,
    amount_field: str = "amount",
) -> Decimal:
    """
    Exact Decimal total of amount_field over rows matching predicate.

    Missing or non-numeric amounts count as zero; never raises for data.

    Args:
        rows: Row collection
        predicate: Row filter; None includes every row
        amount_field: Field holding the amount

    Returns:
        Decimal total
    """
    total = Decimal(0)
    for row in rows:
        if predicate is not None and not predicate(row):
            continue
        total += to_decimal(get_field(row, amount_field))
    return total


def group_by_key(
    rows: Iterable[Any],
    key_selector: Selector,
    default_key: str = DEFAULT_KEY,
) -> Dict[Any, int]:
    """
    Count rows per key in first-seen order.

    None, empty, or blank keys are counted under default_key. Insertion
    order keeps chart legends stable across re-renders of the same data.
    """
    counts: Dict[Any, int] = {}
    for row in rows:
        key = plain(_select(row, key_selector))
        if (
            key is None
            or not _hashable(key)
            or (isinstance(key, str) and not key.strip())
        ):
            key = default_key
        counts[key] = counts.get(key, 0) + 1
    return counts


def count_by_weekday(rows: Iterable[Any], date_field: str) -> Dict[str, int]:
    """Rows per weekday, Monday first, every weekday present."""
    counts = {name: 0 for name in WEEKDAYS}
    for row in rows:
        moment = to_utc_datetime(get_field(row, date_field))
        if moment is not None:
            counts[WEEKDAYS[moment.weekday()]] += 1
    return counts


# =============================================================================
# Time Series
# =============================================================================

def _bucketed(
    rows: Iterable[Any],
    timestamp_field: str,
    bucket: Callable[[datetime], str],
    value_selector: Optional[Selector],
    aggregation: str,
    where: Optional[Callable[[Any], bool]],
) -> List[Tuple[str, Any]]:
    if aggregation not in AGGREGATIONS:
        raise AggregationParameterError(
            f"aggregation must be one of {AGGREGATIONS}, got {aggregation!r}"
        )
    if aggregation == "sum" and value_selector is None:
        raise AggregationParameterError("sum aggregation requires a value_selector")

    totals: Dict[str, Any] = {}
    for row in rows:
        if where is not None and not where(row):
            continue
        moment = to_utc_datetime(get_field(row, timestamp_field))
        if moment is None:
            continue

        if aggregation == "count":
            # With count, the selector decides whether the row is counted at all
            if value_selector is not None and not _select(row, value_selector):
                continue
            key = bucket(moment)
            totals[key] = totals.get(key, 0) + 1
        else:
            key = bucket(moment)
            totals[key] = totals.get(key, Decimal(0)) + to_decimal(_select(row, value_selector))

    # ISO keys sort chronologically
    return sorted(totals.items())


def group_by_day(
    rows: Iterable[Any],
    timestamp_field: str,
    value_selector: Optional[Selector] = None,
    aggregation: str = "count",
    where: Optional[Callable[[Any], bool]] = None,
) -> List[Tuple[str, Any]]:
    """
    Aggregate rows per UTC calendar day.

    Days that end up with no rows are omitted, not zero-filled (see
    fill_daily_gaps). Output is strictly ascending with one entry per day.

    Args:
        rows: Row collection
        timestamp_field: Field holding the timestamp
        value_selector: For "count", a test deciding whether a row counts;
            for "sum", the field name or callable giving the amount
        aggregation: "count" or "sum"
        where: Optional row filter applied before bucketing

    Returns:
        List of (YYYY-MM-DD, value) tuples

    Raises:
        AggregationParameterError: Unknown aggregation or sum without selector
    """
    return _bucketed(rows, timestamp_field, day_key, value_selector, aggregation, where)


def group_by_month(
    rows: Iterable[Any],
    timestamp_field: str,
    value_selector: Optional[Selector] = None,
    aggregation: str = "count",
    where: Optional[Callable[[Any], bool]] = None,
) -> List[Tuple[str, Any]]:
    """Same contract as group_by_day, bucketed by YYYY-MM."""
    return _bucketed(rows, timestamp_field, month_key, value_selector, aggregation, where)


def status_counts_by_month(
    rows: Iterable[Any],
    timestamp_field: str,
    status_field: str,
    known_statuses: Iterable[Any],
) -> List[Tuple[str, Dict[Any, int]]]:
    """
    Per-month status counts for stacked charts.

    Every month present in the data carries every known status.
    Rows with an unknown status or no timestamp are skipped.
    """
    statuses = [plain(status) for status in known_statuses]
    buckets: Dict[str, Dict[Any, int]] = {}
    for row in rows:
        status = plain(get_field(row, status_field))
        if status not in statuses:
            continue
        moment = to_utc_datetime(get_field(row, timestamp_field))
        if moment is None:
            continue
        counts = buckets.setdefault(month_key(moment), {s: 0 for s in statuses})
        counts[status] += 1
    return sorted(buckets.items())


def cumulative_series(
    ordered_daily_values: Iterable[Tuple[str, Any]],
) -> List[CumulativePoint]:
    """
    Attach a running total to an ordered daily series.

    running_total[0] = value[0]; running_total[i] = running_total[i-1] + value[i].
    Recomputed from scratch on every call.
    """
    series: List[CumulativePoint] = []
    running: Any = 0
    for day, value in ordered_daily_values:
        running = running + value
        series.append(CumulativePoint(day, value, running))
    return series


def moving_average(ordered_series: Sequence[Any], window_size: int) -> List[Any]:
    """
    Trailing moving average of the same length as the input.

    Entry i is the mean of entries [max(0, i - window_size + 1) .. i];
    the window shrinks at the start of the series instead of padding.

    Args:
        ordered_series: Numbers in series order
        window_size: Window length, at least 1

    Returns:
        List of means

    Raises:
        AggregationParameterError: window_size is not a positive integer
    """
    if isinstance(window_size, bool) or not isinstance(window_size, int) or window_size < 1:
        raise AggregationParameterError(
            f"window_size must be a positive integer, got {window_size!r}"
        )

    values = list(ordered_series)
    averages = []
    for index in range(len(values)):
        window = values[max(0, index - window_size + 1):index + 1]
        averages.append(sum(window) / len(window))
    return averages


def fill_daily_gaps(
    series: Iterable[Tuple[str, Any]],
    start: Optional[Union[date, str]] = None,
    end: Optional[Union[date, str]] = None,
    fill: Any = 0,
) -> List[Tuple[str, Any]]:
    """
    Densify a daily series so every day between start and end is present.

    start and end default to the first and last day of the series.
    Entries outside [start, end] are dropped.
    """
    values = dict(series)
    first = to_day(start) if start is not None else None
    last = to_day(end) if end is not None else None
    if first is None and values:
        first = date.fromisoformat(min(values))
    if last is None and values:
        last = date.fromisoformat(max(values))
    if first is None or last is None or first > last:
        return []

    dense = []
    day = first
    while day <= last:
        key = day.isoformat()
        dense.append((key, values.get(key, fill)))
        day += timedelta(days=1)
    return dense


def filter_between(
    rows: Iterable[Any],
    timestamp_field: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Any]:
    """
    Keep rows whose timestamp falls inside [start, end].

    With no bounds every row is kept; with a bound, rows without a
    parseable timestamp are dropped.
    """
    if start is None and end is None:
        return list(rows)

    lower = to_utc_datetime(start)
    upper = to_utc_datetime(end)
    kept = []
    for row in rows:
        moment = to_utc_datetime(get_field(row, timestamp_field))
        if moment is None:
            continue
        if lower is not None and moment < lower:
            continue
        if upper is not None and moment > upper:
            continue
        kept.append(row)
    return kept


# =============================================================================
# Joins
# =============================================================================

def join_key(value: Any) -> str:
    """Canonical text form of an id: UUIDs in lower-case hyphenated form, anything else as str."""
    if isinstance(value, uuid.UUID):
        return str(value)
    text = str(value).strip()
    try:
        return str(uuid.UUID(text))
    except ValueError:
        return text


def join_weak(
    rows: Iterable[Any],
    parent_collection: Optional[Iterable[Any]],
    fk_field: str,
    parent_key_field: str,
) -> List[WeakJoin]:
    """
    Pair each row with the parent its weak reference points at.

    Keys are compared through join_key, so UUID objects and UUID strings
    in any case match, and text ids match as strings. A dangling
    reference, a null foreign key, or a parent collection that was never
    loaded (None) all yield parent=None.
    """
    index: Dict[str, Any] = {}
    for parent in parent_collection or ():
        key = get_field(parent, parent_key_field)
        if key is not None:
            index.setdefault(join_key(key), parent)

    joined = []
    for row in rows:
        foreign_key = get_field(row, fk_field)
        parent = index.get(join_key(foreign_key)) if foreign_key is not None else None
        joined.append(WeakJoin(row, parent))
    return joined


# =============================================================================
# Rates
# =============================================================================

def percentage(part: Any, whole: Any, digits: int = 2) -> float:
    """part / whole as a percentage; 0 when whole is zero."""
    if not whole:
        return 0.0
    return round(float(part) * 100 / float(whole), digits)


def trend_percentage(current: Any, previous: Any) -> float:
    """Period-over-period change in percent."""
    if not previous:
        return 100.0 if current and current > 0 else 0.0
    return round((float(current) - float(previous)) / float(previous) * 100, 1)
