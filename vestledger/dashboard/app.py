"""
Vestledger — HTTP API over a vesting ledger.

FastAPI application providing:
- Schedule and status views
- Release summary, releasable amount and daily rate (optionally at a
  what-if timestamp)
- Release, open to any caller
- Owner operations: initialize, pause, unpause, beneficiary change, withdraw

The caller identity for owner operations is taken from the ``X-Caller``
header; the service checks it against the owner.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from vestledger.config import settings
from vestledger.vesting.errors import (
    AlreadyInitialized,
    ClockRegression,
    InsufficientWithdrawable,
    InvalidAmount,
    InvalidBeneficiary,
    InvalidPauseTransition,
    NotActive,
    NotInitialized,
    NotOwner,
    NotPaused,
    PersistenceError,
    TransferFailed,
    VestingError,
)

logger = logging.getLogger(__name__)


# ── Pydantic request models ────────────────────────────────────


class InitializeRequest(BaseModel):
    start_time: int
    beneficiary: str


class BeneficiaryRequest(BaseModel):
    beneficiary: str


class WithdrawRequest(BaseModel):
    amount: int


class DashboardState:
    """Mutable application state injected at startup."""

    def __init__(self) -> None:
        self.service: Any = None
        self.startup_time: datetime = datetime.now(timezone.utc)


state = DashboardState()


ERROR_STATUS: dict[type[VestingError], int] = {
    NotOwner: 403,
    AlreadyInitialized: 409,
    NotInitialized: 409,
    NotActive: 409,
    NotPaused: 409,
    InvalidPauseTransition: 409,
    ClockRegression: 409,
    InsufficientWithdrawable: 400,
    InvalidAmount: 400,
    InvalidBeneficiary: 400,
    TransferFailed: 502,
    PersistenceError: 503,
}


# ── Application lifecycle ──────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup & shutdown lifecycle: build the vesting service if not injected."""
    if state.service is None:
        from vestledger.service import VestingService

        state.service = VestingService.from_settings(settings)
        logger.info(
            "Dashboard connected to vesting ledger '%s' (%s)",
            settings.ledger_id, settings.database_url,
        )
    yield
    logger.info("Vestledger dashboard shut down")


app = FastAPI(
    title="Vestledger",
    description="Token vesting ledger API",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(VestingError)
async def vesting_error_handler(request: Request, exc: VestingError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def _service():
    if state.service is None:
        raise HTTPException(status_code=503, detail="Vesting service not initialized")
    return state.service


# ── Read endpoints ─────────────────────────────────────────────


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service_ready": state.service is not None,
        "uptime_seconds": int((datetime.now(timezone.utc) - state.startup_time).total_seconds()),
    }


@app.get("/api/status")
async def api_status():
    return _service().describe()


@app.get("/api/schedule")
async def api_schedule():
    return {"tranches": [t.model_dump() for t in _service().get_schedule()]}


@app.get("/api/release-info")
async def api_release_info(at: int | None = None):
    return _service().get_release_info(at).model_dump()


@app.get("/api/releasable")
async def api_releasable(at: int | None = None):
    return {"releasable": _service().get_releasable_amount(at)}


@app.get("/api/daily-rate")
async def api_daily_rate(at: int | None = None):
    return {"daily_rate": _service().get_daily_releasable_amount(at)}


@app.get("/api/withdrawable")
async def api_withdrawable():
    return {"withdrawable": _service().get_withdrawable_amount()}


@app.get("/api/events")
async def api_events():
    return {"events": [e.model_dump() for e in _service().get_release_events()]}


# ── Mutating endpoints ─────────────────────────────────────────


@app.post("/api/release")
async def api_release():
    event = _service().release()
    return {"released": event is not None, "event": event.model_dump() if event else None}


@app.post("/api/initialize")
async def api_initialize(req: InitializeRequest, x_caller: str | None = Header(default=None)):
    new_state = _service().initialize(x_caller, req.start_time, req.beneficiary)
    return {"status": new_state.status.value, "tranches": len(new_state.schedule)}


@app.post("/api/pause")
async def api_pause(x_caller: str | None = Header(default=None)):
    return {"status": _service().pause(x_caller).status.value}


@app.post("/api/unpause")
async def api_unpause(x_caller: str | None = Header(default=None)):
    return {"status": _service().unpause(x_caller).status.value}


@app.post("/api/beneficiary")
async def api_beneficiary(req: BeneficiaryRequest, x_caller: str | None = Header(default=None)):
    new_state = _service().set_beneficiary(x_caller, req.beneficiary)
    return {"beneficiary": new_state.beneficiary}


@app.post("/api/withdraw")
async def api_withdraw(req: WithdrawRequest, x_caller: str | None = Header(default=None)):
    return {"withdrawn": _service().withdraw(x_caller, req.amount)}
