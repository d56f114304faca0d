"""Incident filter types and the predicate pass over the canonical incident frame."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, FrozenSet, Iterable, Mapping, Optional, Union

import pandas as pd

from dc_crime.models import Shift

DateLike = Union[str, date, datetime, pd.Timestamp, None]


def _to_bound(value: DateLike, end_of_day: bool = False) -> Optional[pd.Timestamp]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, str) and len(value.strip()) <= 10:
        # '2024-03-31' style strings carry no time part
        value = pd.Timestamp(value.strip()).date()
    # A bare date (no time part) covers the whole day when used as the end bound
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.max if end_of_day else time.min)
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def _to_date_range(value: Any) -> Optional['DateRange']:
    if value is None:
        return None
    if isinstance(value, DateRange):
        resolved = value
    elif isinstance(value, Mapping):
        resolved = DateRange(value.get('start'), value.get('end'))
    else:
        start, end = value
        resolved = DateRange(start, end)
    return None if resolved.is_unbounded else resolved


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive report-date window; a None bound is unbounded

    Bounds may be given as strings, dates, datetimes or Timestamps and are
    stored as naive Timestamps. A bare date used as the end bound covers the
    whole day.
    """

    start: Optional[pd.Timestamp] = None
    end: Optional[pd.Timestamp] = None

    def __post_init__(self):
        object.__setattr__(self, 'start', _to_bound(self.start))
        object.__setattr__(self, 'end', _to_bound(self.end, end_of_day=True))

    @classmethod
    def from_values(cls, start: DateLike = None, end: DateLike = None) -> 'DateRange':
        return cls(start=start, end=end)

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None


@dataclass(frozen=True)
class FilterSpec:
    """
    Incident filter

    Axes are combined with AND; the category and shift sets match any member.
    Empty sets and a missing date range mean the axis is not restricted.
    Every field is normalized on construction: the date range may be a
    DateRange, a (start, end) pair or a {'start': .., 'end': ..} mapping, and
    shifts may be Shift members, strings or {'value': ..} records.
    """

    date_range: Optional[DateRange] = None
    categories: FrozenSet[str] = field(default_factory=frozenset)
    shifts: FrozenSet[Shift] = field(default_factory=frozenset)

    def __post_init__(self):
        cats = frozenset(
            str(c).strip() for c in (self.categories or ()) if c is not None and str(c).strip()
        )
        object.__setattr__(self, 'date_range', _to_date_range(self.date_range))
        object.__setattr__(self, 'categories', cats)
        object.__setattr__(self, 'shifts', frozenset(Shift.parse(s) for s in (self.shifts or ())))

    @classmethod
    def from_raw(
        cls,
        date_range: Any = None,
        categories: Optional[Iterable[str]] = None,
        shifts: Optional[Iterable[Any]] = None,
    ) -> 'FilterSpec':
        """
        Build a spec from loosely shaped values

        Args:
        date_range: None, a DateRange, a (start, end) pair or a {'start': .., 'end': ..} mapping
        categories: Offense labels
        shifts: Shift values as Shift members, strings or {'value': ..} records

        Returns:
        FilterSpec: Normalized spec
        """
        return cls(date_range=date_range, categories=categories or (), shifts=shifts or ())

    @property
    def is_empty(self) -> bool:
        return self.date_range is None and not self.categories and not self.shifts


def apply_filter(incidents: pd.DataFrame, spec: Optional[FilterSpec]) -> pd.DataFrame:
    """
    Keep the incidents matching every axis of the filter

    Args:
    incidents (pd.DataFrame): Canonical incident frame
    spec (FilterSpec): Filter to apply; None behaves like an empty spec

    Returns:
    pd.DataFrame: New frame with the matching rows in their original order
    """
    if spec is None or spec.is_empty:
        return incidents.copy()

    mask = pd.Series(True, index=incidents.index)

    if spec.date_range is not None:
        reported = incidents['report_timestamp']
        if spec.date_range.start is not None:
            mask &= reported >= spec.date_range.start
        if spec.date_range.end is not None:
            mask &= reported <= spec.date_range.end

    if spec.categories:
        mask &= incidents['offense'].isin(list(spec.categories))

    if spec.shifts:
        mask &= incidents['shift'].isin([s.value for s in spec.shifts])

    return incidents.loc[mask].copy()
