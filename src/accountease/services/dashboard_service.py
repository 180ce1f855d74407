from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from accountease.domain.dates import parse_timestamp, start_of_day
from accountease.domain.models import EXPENSE, PURCHASE, SALE, MoneyRecord
from accountease.repositories.contracts import PURCHASES, TRANSACTIONS, IdentityProvider, RecordStore
from accountease.services.auth_service import require_owner
from accountease.services.transaction_service import newest_first

# plural spellings appear in older documents
_KIND_ALIASES = {"sale": SALE, "sales": SALE, "expense": EXPENSE, "expenses": EXPENSE}


@dataclass(frozen=True)
class PeriodTotals:
    sales: float = 0.0
    expenses: float = 0.0
    purchases: float = 0.0


@dataclass(frozen=True)
class DashboardStats:
    total: PeriodTotals
    today: PeriodTotals
    month: PeriodTotals
    net_profit: float
    recent: list[MoneyRecord]


class DashboardService:
    def __init__(self, store: RecordStore, identity: IdentityProvider, now: Callable[[], datetime] = datetime.now):
        self.store = store
        self.identity = identity
        self.now = now

    def stats(self, recent_limit: int = 10) -> DashboardStats:
        owner_id = require_owner(self.identity)
        today = start_of_day(self.now())
        first_of_month = today.replace(day=1)

        records: list[MoneyRecord] = []
        for doc in self.store.fetch_where(TRANSACTIONS, owner_id):
            kind = _KIND_ALIASES.get(str(doc.get("type") or "").strip().lower())
            if kind:
                records.append(MoneyRecord.from_document(doc, kind=kind))
        for doc in self.store.fetch_where(PURCHASES, owner_id):
            records.append(MoneyRecord.from_document(doc, kind=PURCHASE))

        sums = {name: {SALE: 0.0, EXPENSE: 0.0, PURCHASE: 0.0} for name in ("total", "today", "month")}
        for r in records:
            sums["total"][r.kind] += r.amount
            when = parse_timestamp(r.date)
            if when is None:
                continue
            day = start_of_day(when)
            if day == today:
                sums["today"][r.kind] += r.amount
            if day >= first_of_month:
                sums["month"][r.kind] += r.amount

        def totals(name: str) -> PeriodTotals:
            s = sums[name]
            return PeriodTotals(sales=s[SALE], expenses=s[EXPENSE], purchases=s[PURCHASE])

        total = totals("total")
        return DashboardStats(
            total=total,
            today=totals("today"),
            month=totals("month"),
            net_profit=total.sales - (total.purchases + total.expenses),
            recent=newest_first(records)[:recent_limit],
        )
