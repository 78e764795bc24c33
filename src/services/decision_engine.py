"""
Acceptance Decision Engine
==========================

Decides whether a PENDING request may become ACCEPTED on a vehicle, or
records a DECLINED decision.

Accept flow
-----------
1. Re-read the request; it must exist and be PENDING.
2. Resolve the vehicle (by id, or by normalised plate number).
3. Ask the Capacity Ledger for occupancy and apply the seat-fit rule.
4. Hand the write to ``RequestStateStore.atomic_transition`` with a
   ``SeatGuard`` so the fit is re-validated under the vehicle lock.

Error policy
------------
* Validation / capacity errors become a typed ``Rejected`` result.
* ``Conflict`` from step 4 triggers exactly one full retry (steps 1-4,
  fresh occupancy); a second ``Conflict`` is returned as ``Rejected``.
* ``StorageUnavailable`` and ``DecisionTimeout`` propagate unchanged.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Optional

from src.config import settings
from src.domain.capacity import CapacityLedger
from src.domain.decision import (
    Accepted,
    Decision,
    Declined,
    Rejected,
    SeatFit,
    check_group_size,
    seat_fit,
)
from src.domain.entities import Request, TransitionFields
from src.domain.enums import DecisionAction, RequestStatus
from src.domain.errors import (
    Conflict,
    DecisionTimeout,
    DispatchError,
    MissingVehicle,
    RequestNotFound,
    RequestNotPending,
    StorageUnavailable,
    VehicleNotFound,
)
from src.infrastructure.store import RequestStateStore, SeatGuard

logger = logging.getLogger(__name__)

_FATAL = (StorageUnavailable, DecisionTimeout)


class DecisionEngine:
    def __init__(
        self,
        store: RequestStateStore,
        ledger: Optional[CapacityLedger] = None,
        *,
        timeout_seconds: Optional[float] = None,
    ):
        self.store = store
        self.ledger = ledger or CapacityLedger(
            store,
            window_scoped=settings.window_scoped_occupancy,
            read_retries=settings.occupancy_read_retries,
        )
        self.timeout_seconds = (
            settings.decision_timeout_seconds
            if timeout_seconds is None
            else timeout_seconds
        )

    # ── Public API ────────────────────────────────────────────────────

    async def decide(
        self,
        request_id: int,
        action: DecisionAction,
        *,
        vehicle_id: Optional[int] = None,
        plate_no: Optional[str] = None,
        fields: Optional[TransitionFields] = None,
    ) -> Decision:
        """Single entry point for an admin accept/decline action."""
        if DecisionAction(action) == DecisionAction.ACCEPT:
            return await self.accept(
                request_id, vehicle_id=vehicle_id, plate_no=plate_no, fields=fields
            )
        fields = fields or TransitionFields()
        return await self.decline(
            request_id, reason=fields.decline_reason, fields=fields
        )

    async def accept(
        self,
        request_id: int,
        *,
        vehicle_id: Optional[int] = None,
        plate_no: Optional[str] = None,
        fields: Optional[TransitionFields] = None,
    ) -> Decision:
        """Accept onto a vehicle; the group size is the passenger count."""
        return await self._bounded(
            self._with_conflict_retry(
                request_id,
                lambda: self._try_accept(
                    request_id,
                    vehicle_id,
                    plate_no,
                    fields or TransitionFields(),
                ),
            )
        )

    async def decline(
        self,
        request_id: int,
        *,
        reason: Optional[str] = None,
        fields: Optional[TransitionFields] = None,
    ) -> Decision:
        fields = dataclasses.replace(
            fields or TransitionFields(), decline_reason=reason
        )
        return await self._bounded(
            self._with_conflict_retry(
                request_id, lambda: self._try_decline(request_id, fields)
            )
        )

    async def evaluate(
        self, request_id: int, vehicle_id: Optional[int], group_size: int
    ) -> SeatFit:
        """Read-only seat-fit check; never writes."""

        async def _evaluate() -> SeatFit:
            try:
                request = await self._pending_request(request_id)
                if vehicle_id is None:
                    raise MissingVehicle()
                check_group_size(group_size)
                view = await self.ledger.occupancy(vehicle_id, request.trip_window)
                return seat_fit(view, group_size)
            except _FATAL:
                raise
            except DispatchError as exc:
                return Rejected.from_error(exc)

        return await self._bounded(_evaluate())

    # ── Internals ─────────────────────────────────────────────────────

    async def _try_accept(
        self,
        request_id: int,
        vehicle_id: Optional[int],
        plate_no: Optional[str],
        fields: TransitionFields,
    ) -> Decision:
        request = await self._pending_request(request_id)

        if vehicle_id is None:
            if not plate_no:
                raise MissingVehicle()
            vehicle = await self.store.find_vehicle_by_plate(plate_no)
            if vehicle is None:
                raise VehicleNotFound(plate_no)
            vehicle_id = vehicle.id
            if fields.plate_no is None:
                fields = dataclasses.replace(fields, plate_no=vehicle.plate_no)

        group_size = request.passenger_count
        check_group_size(group_size)

        window = request.trip_window if self.ledger.window_scoped else None
        view = await self.ledger.occupancy(vehicle_id, window)
        fit = seat_fit(view, group_size)
        if isinstance(fit, Rejected):
            logger.info(
                "Request %s rejected on vehicle %s: %s (available=%s, requested=%s)",
                request_id,
                vehicle_id,
                fit.reason,
                fit.available_seats,
                fit.requested_group_size,
            )
            return fit

        updated = await self.store.atomic_transition(
            request_id,
            RequestStatus.PENDING,
            RequestStatus.ACCEPTED,
            fields,
            SeatGuard(vehicle_id, group_size, window),
        )
        logger.info(
            "Request %s accepted on vehicle %s (%d/%d seats occupied)",
            request_id,
            vehicle_id,
            fit.occupied_after,
            fit.total_seats,
        )
        return Accepted(updated, fit.occupied_after, fit.available_after)

    async def _try_decline(
        self, request_id: int, fields: TransitionFields
    ) -> Decision:
        await self._pending_request(request_id)
        updated = await self.store.atomic_transition(
            request_id,
            RequestStatus.PENDING,
            RequestStatus.DECLINED,
            fields,
        )
        logger.info("Request %s declined", request_id)
        return Declined(updated)

    async def _pending_request(self, request_id: int) -> Request:
        request = await self.store.get_request(request_id)
        if request is None:
            raise RequestNotFound(request_id)
        if request.status != RequestStatus.PENDING:
            raise RequestNotPending(request_id, request.status.value)
        return request

    async def _with_conflict_retry(self, request_id: int, attempt) -> Decision:
        retried = False
        while True:
            try:
                return await attempt()
            except _FATAL:
                raise
            except Conflict as exc:
                if retried:
                    logger.warning(
                        "Request %s still conflicting after retry", request_id
                    )
                    return Rejected.from_error(exc)
                retried = True
                logger.warning(
                    "Conflict on request %s (%s), retrying once", request_id, exc
                )
            except DispatchError as exc:
                logger.info("Request %s rejected: %s", request_id, exc.code)
                return Rejected.from_error(exc)

    async def _bounded(self, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Decision exceeded %.1fs and was abandoned", self.timeout_seconds
            )
            raise DecisionTimeout(
                f"Decision did not complete within {self.timeout_seconds}s"
            )
