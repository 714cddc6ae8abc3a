# backend/app/routers/dashboard.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from ..auth import Identity, get_identity
from ..clients.property_api import PropertyApiClient
from ..schemas import DashboardOut, VerificationOut
from ..services.dashboard_composer import DashboardComposer
from ..services.verification_gate import GateTransitionError, VerificationGate

log = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


async def get_property_api() -> AsyncIterator[PropertyApiClient]:
    async with PropertyApiClient() as api:
        yield api


def get_now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("", response_model=DashboardOut)
async def dashboard(
    request: Request,
    identity: Optional[Identity] = Depends(get_identity),
    api: PropertyApiClient = Depends(get_property_api),
    now: datetime = Depends(get_now),
):
    """
    One page load of the dashboard.

    - Runs the verification gate first (synchronously, before any fetch)
    - Loads the four collections concurrently; a failed collection shows as
      zero/empty instead of failing the response
    """
    gate_state = VerificationGate(request.session).start(identity)

    composer = DashboardComposer(api, now=now, identity=identity, gate_state=gate_state)
    try:
        view = await composer.load()
    finally:
        composer.close()

    log.info(
        "dashboard composed",
        extra={"role": identity.role if identity else None, "gate_state": gate_state.value},
    )
    return DashboardOut.from_view(view)


@router.post("/verification/confirm", response_model=VerificationOut)
def confirm_verification(
    request: Request,
    identity: Optional[Identity] = Depends(get_identity),
):
    gate = VerificationGate(request.session)
    try:
        redirect = gate.confirm(identity)
    except GateTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return VerificationOut(gate_state=gate.state, redirect=redirect)


@router.post("/verification/dismiss", response_model=VerificationOut)
def dismiss_verification(request: Request):
    gate = VerificationGate(request.session)
    try:
        gate.dismiss()
    except GateTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return VerificationOut(gate_state=gate.state, redirect=None)
