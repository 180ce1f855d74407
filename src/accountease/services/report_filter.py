from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from accountease.application.events import EventChannel
from accountease.domain.dates import end_of_day, naive_local, shift_months, start_of_day
from accountease.domain.errors import InvalidArgumentError
from accountease.domain.models import TIMEFRAMES, DateRange, ReportFilter

log = logging.getLogger("accountease.reports")


def default_filter(now: datetime) -> ReportFilter:
    return ReportFilter(timeframe="monthly", date_range=DateRange(start=shift_months(now, -1), end=now))


def naive_filter(report_filter: ReportFilter) -> ReportFilter:
    """Return ``report_filter`` with its range endpoints in naive local time.

    Stored record dates are read as naive local datetimes, so aware endpoints
    would not be comparable with them.
    """
    start, end = report_filter.date_range.start, report_filter.date_range.end
    if start.tzinfo is None and end.tzinfo is None:
        return report_filter
    return ReportFilter(
        timeframe=report_filter.timeframe,
        date_range=DateRange(start=naive_local(start), end=naive_local(end)),
    )


def range_for_timeframe(timeframe: str, now: datetime) -> DateRange:
    end = end_of_day(now)
    if timeframe == "daily":
        start = start_of_day(now)
    elif timeframe == "weekly":
        start = start_of_day(now - timedelta(days=7))
    elif timeframe == "monthly":
        start = start_of_day(shift_months(now.replace(day=1), -1))
    elif timeframe == "yearly":
        start = start_of_day(shift_months(now.replace(day=1), -12))
    else:
        raise InvalidArgumentError(f"Timeframe '{timeframe}' needs an explicit date range.")
    return DateRange(start=start, end=end)


class ReportFilterState:
    """The reporting window shared by every report panel.

    The filter is an immutable value replaced wholesale on each selection, so
    ``current`` is a consistent snapshot that later selections can not change.
    Subscribers are told about every replacement.
    """

    def __init__(self, now: Callable[[], datetime] = datetime.now, initial: Optional[ReportFilter] = None):
        self.now = now
        self._current = initial or default_filter(now())
        self._lock = threading.Lock()
        self.changes: EventChannel[ReportFilter] = EventChannel("report_filter")

    @property
    def current(self) -> ReportFilter:
        return self._current

    def subscribe(self, callback: Callable[[ReportFilter], None]) -> Callable[[], None]:
        return self.changes.subscribe(callback)

    def set_timeframe(
        self,
        timeframe: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> ReportFilter:
        if timeframe not in TIMEFRAMES:
            raise InvalidArgumentError(f"Unknown timeframe: {timeframe}")
        if timeframe == "custom":
            if start is None or end is None:
                raise InvalidArgumentError("A custom range needs both start and end.")
            start, end = naive_local(start), naive_local(end)
            if start > end:
                raise InvalidArgumentError("Range start must not be after its end.")
            date_range = DateRange(start=start, end=end)
        else:
            date_range = range_for_timeframe(timeframe, self.now())
        return self._replace(ReportFilter(timeframe=timeframe, date_range=date_range))

    def set_custom_range(self, start: datetime, end: datetime) -> ReportFilter:
        return self.set_timeframe("custom", start=start, end=end)

    def _replace(self, new_filter: ReportFilter) -> ReportFilter:
        with self._lock:
            self._current = new_filter
        log.info(
            "report_filter_changed timeframe=%s start=%s end=%s",
            new_filter.timeframe, new_filter.date_range.start, new_filter.date_range.end,
        )
        self.changes.publish(new_filter)
        return new_filter
