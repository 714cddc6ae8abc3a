# backend/app/domain/metrics.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional

from .windows import in_window, last_n_days_window, parse_timestamp

log = logging.getLogger(__name__)

TENANT_OVERDUE = "Overdue"
UNIT_OCCUPIED = "Occupied"
MAINTENANCE_PENDING = "Pending"
MAINTENANCE_COMPLETED = "Completed"

UNKNOWN_TENANT = "Unknown Tenant"
DELETED_TENANT = "Deleted Tenant"

RECENT_WINDOW_DAYS = 30
FEED_LIMIT = 8


def _get(rec: Any, key: str, default: Any = None) -> Any:
    """Read a field from a JSON mapping or an attribute-style record."""
    if isinstance(rec, Mapping):
        return rec.get(key, default)
    return getattr(rec, key, default)


def record_id(rec: Any) -> Optional[str]:
    """Upstream records carry Mongo-style `_id`; some fixtures use `id`."""
    v = _get(rec, "_id")
    if v is None:
        v = _get(rec, "id")
    return str(v) if v is not None else None


def _status(rec: Any) -> Optional[str]:
    return _get(rec, "status")


# -------------------------
# Tenants / units
# -------------------------
def overdue_tenants(tenants: Iterable[Any]) -> list[Any]:
    """Tenant status is authoritative; overdue-ness is never recomputed from dates."""
    return [t for t in tenants if _status(t) == TENANT_OVERDUE]


def occupancy_rate(units: Iterable[Any]) -> int:
    """
    Whole-number percentage of occupied units, 0 for an empty collection.
    Ties round away from zero (66.5 -> 67).
    """
    total = 0
    occupied = 0
    for u in units:
        total += 1
        if _status(u) == UNIT_OCCUPIED:
            occupied += 1

    if total == 0:
        return 0
    pct = Decimal(100 * occupied) / Decimal(total)
    return int(pct.quantize(Decimal(1), rounding=ROUND_HALF_UP))


# -------------------------
# Payments
# -------------------------
def payment_amount(payment: Any) -> float:
    """
    Missing, non-numeric or non-finite (NaN, Infinity) amounts count as 0.0
    (logged, not raised). Numeric strings are accepted.
    """
    raw = _get(payment, "amount")
    value: Optional[float] = None
    if raw is not None and not isinstance(raw, bool):
        try:
            value = float(raw.strip() if isinstance(raw, str) else raw)
        except (TypeError, ValueError, OverflowError):
            value = None

    if value is None or not math.isfinite(value):
        log.warning(
            "payment amount is missing or non-numeric; using 0",
            extra={"payment_id": record_id(payment)},
        )
        return 0.0
    return value


def tenant_full_name(tenant: Any) -> str:
    """"first last"; empty string when both parts are blank."""
    parts = [str(_get(tenant, k) or "").strip() for k in ("firstName", "lastName")]
    return " ".join(p for p in parts if p)


def resolve_tenant_name(ref: Any, tenants_by_id: Mapping[str, Any]) -> str:
    """
    Best-effort payment -> tenant join.

    The reference is either a populated tenant object, a bare tenant id, or
    absent. Absent or unresolvable references give UNKNOWN_TENANT. A resolved
    tenant whose names are blank gives "" (shown as DELETED_TENANT).
    """
    if ref is None:
        return UNKNOWN_TENANT
    if isinstance(ref, Mapping) or not isinstance(ref, (str, int)):
        return tenant_full_name(ref)
    tenant = tenants_by_id.get(str(ref))
    if tenant is None:
        return UNKNOWN_TENANT
    return tenant_full_name(tenant)


@dataclass(frozen=True)
class RecentPayment:
    payment_id: Optional[str]
    tenant_name: str
    amount: float
    payment_date: datetime
    payment_method: Optional[str]
    raw: Any = field(default=None, compare=False, repr=False)

    @property
    def display_name(self) -> str:
        return self.tenant_name or DELETED_TENANT


def recent_payments(
    payments: Iterable[Any],
    tenants: Iterable[Any],
    *,
    now: datetime,
    days: int = RECENT_WINDOW_DAYS,
) -> list[RecentPayment]:
    """
    Payments dated within the last `days` UTC calendar days (inclusive on both
    ends), most recent first, joined to tenant names.

    Equal timestamps keep their upstream order. The result is not capped;
    see recent_feed() for the display slice.
    """
    window = last_n_days_window(now, days)
    tenants_by_id: dict[str, Any] = {}
    for t in tenants:
        tid = record_id(t)
        if tid is not None:
            tenants_by_id[tid] = t

    rows: list[RecentPayment] = []
    for p in payments:
        ts = parse_timestamp(_get(p, "paymentDate"))
        if ts is None:
            log.debug("payment has no usable paymentDate; skipped", extra={"payment_id": record_id(p)})
            continue
        if not in_window(ts, window):
            continue

        method = _get(p, "paymentMethod")
        rows.append(
            RecentPayment(
                payment_id=record_id(p),
                tenant_name=resolve_tenant_name(_get(p, "tenantId"), tenants_by_id),
                amount=payment_amount(p),
                payment_date=ts,
                payment_method=str(method) if method else None,
                raw=p,
            )
        )

    # sorted() is stable with reverse=True
    return sorted(rows, key=lambda r: r.payment_date, reverse=True)


def recent_feed(recent: Iterable[RecentPayment], limit: int = FEED_LIMIT) -> list[RecentPayment]:
    out: list[RecentPayment] = []
    for r in recent:
        if len(out) >= limit:
            break
        out.append(r)
    return out


# -------------------------
# Maintenance
# -------------------------
@dataclass(frozen=True)
class MaintenancePartition:
    pending: tuple[Any, ...] = ()
    completed: tuple[Any, ...] = ()


def partition_maintenance(requests: Iterable[Any]) -> MaintenancePartition:
    """Pending and Completed only; any other status is left out of both."""
    pending: list[Any] = []
    completed: list[Any] = []
    for r in requests:
        s = _status(r)
        if s == MAINTENANCE_PENDING:
            pending.append(r)
        elif s == MAINTENANCE_COMPLETED:
            completed.append(r)
    return MaintenancePartition(pending=tuple(pending), completed=tuple(completed))
