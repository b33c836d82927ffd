"""
FastAPI server: wallet integrity verification.

GET  /api/verify/{wallet}  read-only check (no notarization)
POST /api/verify           check + on-chain notarization of VERIFIED / SYBIL decisions
GET  /health               liveness + notary / RPC configuration

The IntegrityService is provided by get_integrity_service (override in tests).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_trustchain import __version__
from backend_trustchain.analytics.integrity_pipeline import IntegrityService, build_integrity_service
from backend_trustchain.config import get_settings
from backend_trustchain.config.env import mask_rpc_url
from backend_trustchain.core.exceptions import HistoryFetchError, InvalidAddressError
from backend_trustchain.trustchain_logging import get_logger, short_wallet
from backend_trustchain.utils.wallet_utils import is_valid_wallet

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Models
# -----------------------------------------------------------------------------

class VerifyRequest(BaseModel):
    """POST /api/verify body."""

    address: Any = Field(None, description="Solana wallet address (base58)")


class ScoresModel(BaseModel):
    gini: float = Field(..., ge=0, le=1)
    hhi: float = Field(..., ge=0, le=1)
    syncIndex: float = Field(..., ge=0, le=1)
    totalScore: int = Field(..., ge=0, le=100)
    fairScore: float = Field(..., ge=0, le=100)
    trustChainScore: int = Field(..., ge=0, le=100)


class GovernanceModel(BaseModel):
    voterWeightMultiplier: float
    isQualified: bool
    tier: str


class VerifyResponse(BaseModel):
    """Verification result: decision, scores, governance weight, optional notary signature."""

    wallet: str
    status: str = Field(..., description="VERIFIED | PROBATIONARY | SYBIL")
    reason: str
    scores: ScoresModel
    governance: GovernanceModel
    txCount: int
    signature: str | None = None
    latencyMs: int


# -----------------------------------------------------------------------------
# Dependency and lifespan
# -----------------------------------------------------------------------------

def get_integrity_service(request: Request) -> IntegrityService:
    """Dependency: one IntegrityService per app (shares the reputation cache across requests)."""
    service = getattr(request.app.state, "integrity_service", None)
    if service is None:
        service = build_integrity_service()
        request.app.state.integrity_service = service
    return service


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("api_started", version=__version__)
    yield
    service = getattr(app.state, "integrity_service", None)
    if service is not None:
        await service.close()
    logger.info("api_stopped")


app = FastAPI(
    title="Backend TrustChain API",
    description="Behavioral integrity verification and governance weighting for Solana wallets.",
    version=__version__,
    lifespan=lifespan,
)


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------

async def _verify(service: IntegrityService, wallet: str, notarize: bool) -> VerifyResponse:
    if not is_valid_wallet(wallet):
        raise InvalidAddressError(wallet or "")
    logger.info("verify_called", wallet_id=short_wallet(wallet), notarize=notarize)
    result = await service.verify(wallet, notarize=notarize)
    return VerifyResponse(**result.to_response())


@app.get("/api/verify/{wallet}", response_model=VerifyResponse)
async def verify_wallet(wallet: str, service: IntegrityService = Depends(get_integrity_service)) -> VerifyResponse:
    """Read-only integrity check; signature is always null."""
    return await _verify(service, wallet.strip(), notarize=False)


@app.post("/api/verify", response_model=VerifyResponse)
async def verify_and_notarize(
    body: VerifyRequest,
    service: IntegrityService = Depends(get_integrity_service),
) -> VerifyResponse:
    """Integrity check plus notarization. Notary failures leave signature null."""
    address = body.address.strip() if isinstance(body.address, str) else ""
    return await _verify(service, address, notarize=True)


@app.get("/health")
def health(service: IntegrityService = Depends(get_integrity_service)) -> dict[str, Any]:
    """Liveness plus notary configuration: public key, RPC endpoint (masked), program id."""
    settings = get_settings()
    notary = service.notary
    return {
        "status": "ok",
        "version": __version__,
        "notary": {
            "configured": notary is not None,
            "pubkey": getattr(notary, "notary_pubkey", None),
        },
        "rpc": mask_rpc_url(settings.solana_rpc_url),
        "programId": settings.solana_program_id,
    }


# -----------------------------------------------------------------------------
# Error mapping
# -----------------------------------------------------------------------------

@app.exception_handler(InvalidAddressError)
async def invalid_address_handler(request: Request, exc: InvalidAddressError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"status": exc.code})


@app.exception_handler(HistoryFetchError)
async def history_fetch_handler(request: Request, exc: HistoryFetchError) -> JSONResponse:
    logger.error("verify_history_failed", wallet_id=short_wallet(exc.address), error=exc.reason)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "details": exc.reason},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
    """Consistent JSON error response for HTTPException."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
