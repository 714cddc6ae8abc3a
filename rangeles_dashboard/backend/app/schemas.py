# backend/app/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from .auth import Identity
from .domain.formatting import format_amount, format_date, format_method, role_badge
from .domain.metrics import RecentPayment
from .services.dashboard_composer import DashboardView
from .services.verification_gate import GateState


# -------------------- Identity --------------------

class IdentityOut(BaseModel):
    id: Optional[str] = None
    role: str
    role_badge: str
    expires_at: Optional[datetime] = None

    @classmethod
    def from_identity(cls, ident: Identity) -> "IdentityOut":
        return cls(
            id=ident.id,
            role=ident.role,
            role_badge=role_badge(ident.role),
            expires_at=ident.expires_at,
        )


# -------------------- Dashboard --------------------

class RecentPaymentOut(BaseModel):
    payment_id: Optional[str] = None
    tenant_name: str
    display_name: str
    amount: float
    amount_display: str
    payment_date: datetime
    date_display: str
    payment_method: Optional[str] = None
    method_display: str

    @classmethod
    def from_payment(cls, p: RecentPayment) -> "RecentPaymentOut":
        return cls(
            payment_id=p.payment_id,
            tenant_name=p.tenant_name,
            display_name=p.display_name,
            amount=p.amount,
            amount_display=format_amount(p.amount),
            payment_date=p.payment_date,
            date_display=format_date(p.payment_date),
            payment_method=p.payment_method,
            method_display=format_method(p.payment_method),
        )


class DashboardOut(BaseModel):
    loading: bool
    tenant_count: int
    overdue_count: int
    occupancy_rate: int = Field(ge=0, le=100)

    # display slice only (at most recent_payments_display_limit items)
    recent_payments: list[RecentPaymentOut] = Field(default_factory=list)

    pending_maintenance: list[Any] = Field(default_factory=list)
    completed_maintenance: list[Any] = Field(default_factory=list)

    identity: Optional[IdentityOut] = None
    gate_state: GateState = GateState.IDLE
    show_verification: bool = False

    @classmethod
    def from_view(cls, view: DashboardView) -> "DashboardOut":
        return cls(
            loading=view.loading,
            tenant_count=view.tenant_count,
            overdue_count=view.overdue_count,
            occupancy_rate=view.occupancy_rate,
            recent_payments=[RecentPaymentOut.from_payment(p) for p in view.recent_feed],
            pending_maintenance=list(view.pending_maintenance),
            completed_maintenance=list(view.completed_maintenance),
            identity=IdentityOut.from_identity(view.identity) if view.identity else None,
            gate_state=view.gate_state,
            show_verification=view.gate_state == GateState.PENDING and view.identity is not None,
        )


# -------------------- Verification gate --------------------

class VerificationOut(BaseModel):
    gate_state: GateState
    redirect: Optional[str] = None
