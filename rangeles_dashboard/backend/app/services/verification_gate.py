# backend/app/services/verification_gate.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping, MutableMapping, Optional

from ..auth import Identity
from ..config import settings

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Session Verification Gate
# -----------------------------------------------------------------------------
#   idle -> pending -> confirmed
#                   -> dismissed
#
# The session store is passed in (Starlette request.session in the app, a
# plain dict in tests). Two keys live there:
#   - verificationShown: one-shot flag, set the first time a privileged
#     identity reaches pending; never cleared by this module
#   - verificationState: the pending/confirmed/dismissed marker for the
#     current page view; reset on every page load
# -----------------------------------------------------------------------------


class GateState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DISMISSED = "dismissed"


class GateTransitionError(ValueError):
    pass


def default_destinations() -> dict[str, str]:
    return {
        "admin": settings.admin_destination,
        "staff": settings.staff_destination,
    }


class VerificationGate:
    def __init__(
        self,
        session: MutableMapping[str, Any],
        *,
        shown_key: Optional[str] = None,
        state_key: Optional[str] = None,
        destinations: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._session = session
        self._shown_key = shown_key or settings.verification_session_key
        self._state_key = state_key or settings.verification_state_key
        self._destinations = dict(destinations) if destinations is not None else default_destinations()

    @property
    def already_shown(self) -> bool:
        return bool(self._session.get(self._shown_key))

    @property
    def state(self) -> GateState:
        raw = self._session.get(self._state_key)
        try:
            return GateState(raw) if raw else GateState.IDLE
        except ValueError:
            return GateState.IDLE

    def _set_state(self, st: GateState) -> None:
        self._session[self._state_key] = st.value

    def start(self, identity: Optional[Identity]) -> GateState:
        """
        Page-load entry point; call right after identity decoding.

        Reaches pending at most once per session: the shown flag is written
        before the state changes, so a reload never prompts again.
        """
        self._session.pop(self._state_key, None)

        if identity is None or self.already_shown:
            return GateState.IDLE
        if not identity.is_privileged:
            return GateState.IDLE

        self._session[self._shown_key] = "true"
        self._set_state(GateState.PENDING)
        log.info(
            "verification gate opened",
            extra={"role": identity.role, "gate_state": GateState.PENDING.value},
        )
        return GateState.PENDING

    def confirm(self, identity: Optional[Identity]) -> Optional[str]:
        """pending -> confirmed. Returns the role destination, or None for no redirect."""
        self._require_pending("confirm")
        self._set_state(GateState.CONFIRMED)

        role = identity.role if identity is not None else None
        destination = self._destinations.get(role) if role else None
        log.info(
            "verification confirmed",
            extra={"role": role, "gate_state": GateState.CONFIRMED.value},
        )
        return destination

    def dismiss(self) -> None:
        self._require_pending("dismiss")
        self._set_state(GateState.DISMISSED)
        log.info("verification dismissed", extra={"gate_state": GateState.DISMISSED.value})

    def _require_pending(self, action: str) -> None:
        st = self.state
        if st != GateState.PENDING:
            raise GateTransitionError(f"cannot {action} verification from state '{st.value}'")
