from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from coachbot.api.auth import require_admin
from coachbot.api.schemas import (
    AddressRequest,
    DispatchResponse,
    RecordList,
    SimulatedReplyRequest,
    SweepSummary,
    TestMessageRequest,
)
from coachbot.core import state_machine as sm
from coachbot.core.dispatcher import get_dispatcher
from coachbot.core.sweeps import ESCALATE, INITIATE, REMIND, get_sweeper, run_sweep
from coachbot.messaging.client import TransportError, send_message
from coachbot.observability.logging import log
import coachbot.observability.metrics as metrics
from coachbot.store.record_repo import StoreError, get_store
from coachbot.utils.lock import LockUnavailableError
from coachbot.utils.phone import normalize_address

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _http_error(e: Exception, action: str) -> HTTPException:
    log(event="admin_action_failed", action=action, errorType=type(e).__name__, error=str(e)[:500])
    if isinstance(e, TransportError):
        return HTTPException(status_code=502, detail=f"Message delivery failed: {e}")
    if isinstance(e, LockUnavailableError):
        return HTTPException(status_code=409, detail="Subject is busy, retry shortly")
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=500, detail=f"{type(e).__name__}: {e}")


def _address_or_400(raw: str) -> str:
    address = normalize_address(raw)
    if not address:
        raise HTTPException(status_code=400, detail=f"Not a phone number: {raw}")
    return address


# ---------------------------------------------------------------------------
# Sweeps
# ---------------------------------------------------------------------------
async def _sweep(name: str) -> SweepSummary:
    try:
        summary = await run_in_threadpool(run_sweep, name)
    except StoreError as e:
        raise _http_error(e, f"sweep:{name}")
    return SweepSummary(**summary)


@router.post("/sweeps/initiate", response_model=SweepSummary)
async def sweep_initiate():
    return await _sweep(INITIATE)


@router.post("/sweeps/remind", response_model=SweepSummary)
async def sweep_remind():
    return await _sweep(REMIND)


@router.post("/sweeps/escalate", response_model=SweepSummary)
async def sweep_escalate():
    return await _sweep(ESCALATE)


# ---------------------------------------------------------------------------
# Records (returned verbatim)
# ---------------------------------------------------------------------------
@router.get("/onboarding", response_model=RecordList)
def list_onboarding():
    records = [r.to_dict() for r in get_store().list_all(sm.ONBOARDING)]
    return RecordList(count=len(records), records=records)


@router.get("/onboarding/{address}")
def get_onboarding(address: str):
    record = get_store().load_onboarding(_address_or_400(address))
    if record is None:
        raise HTTPException(status_code=404, detail="Onboarding record not found")
    return record.to_dict()


@router.get("/checkins", response_model=RecordList)
def list_checkins():
    records = [r.to_dict() for r in get_store().list_all(sm.CHECKIN)]
    return RecordList(count=len(records), records=records)


@router.get("/checkins/{address}")
def get_checkin(address: str, period: Optional[str] = None):
    """Latest check-in for the subject, or the one for `period` (YYYY-MM-DD week start)."""
    store = get_store()
    addr = _address_or_400(address)
    record = store.load_checkin(addr, period) if period else store.load_current_checkin(addr)
    if record is None:
        raise HTTPException(status_code=404, detail="Check-in record not found")
    return record.to_dict()


# ---------------------------------------------------------------------------
# Single-subject actions
# ---------------------------------------------------------------------------
@router.post("/onboarding/start", response_model=DispatchResponse)
async def start_onboarding(req: AddressRequest):
    try:
        result = await run_in_threadpool(get_dispatcher().start_onboarding, req.address)
    except (TransportError, StoreError, LockUnavailableError, ValueError) as e:
        raise _http_error(e, "onboarding_start")
    return DispatchResponse(**result.to_dict())


@router.post("/checkins/test", response_model=DispatchResponse)
async def create_test_checkin(req: AddressRequest):
    """Open this week's check-in for one subject, skipping the eligibility scan."""
    address = _address_or_400(req.address)
    try:
        result = await run_in_threadpool(get_sweeper().open_checkin, address)
    except (TransportError, StoreError, LockUnavailableError) as e:
        raise _http_error(e, "checkin_test")
    if result is None:
        raise HTTPException(status_code=409, detail="Check-in already exists for this period")
    return DispatchResponse(**result.to_dict())


@router.post("/inbound/test", response_model=DispatchResponse)
async def simulate_inbound(req: SimulatedReplyRequest):
    """Feed a reply through the normal inbound path as if the subject had sent it."""
    _address_or_400(req.address)
    try:
        result = await run_in_threadpool(get_dispatcher().handle_inbound, req.address, req.body)
    except (TransportError, StoreError, LockUnavailableError) as e:
        raise _http_error(e, "inbound_test")
    return DispatchResponse(**result.to_dict())


@router.post("/test-message")
async def test_message(req: TestMessageRequest):
    """Transport smoke test. Touches no records."""
    address = _address_or_400(req.address)
    try:
        sid = await run_in_threadpool(send_message, address, req.message)
    except TransportError as e:
        raise _http_error(e, "test_message")
    return {"success": True, "address": address, "sid": sid}


@router.get("/metrics")
def get_metrics():
    """
    Observability snapshot backed by Redis counters.
    """
    return metrics.get_snapshot()
