"""
FastAPI server: transaction analysis and wallet history.

GET /api/transaction/{signature} returns the classification, financial
activity and historical USD prices of one transaction; GET
/api/portfolio/history/{wallet} returns the same for a wallet's recent
transactions. Every response is wrapped as {success, data} or
{success: false, error, status}.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from solders.pubkey import Pubkey
from solders.signature import Signature

from backend_solview import __version__
from backend_solview.config import get_settings
from backend_solview.core.exceptions import ProviderError, TransactionNotFound
from backend_solview.services.transaction_service import TransactionService, build_transaction_service
from backend_solview.solview_logging import get_logger

logger = get_logger(__name__)

MAX_HISTORY_LIMIT = 100


class HealthResponse(BaseModel):
    status: str = Field(..., description="\"ok\" when the server is up")


class ApiResponse(BaseModel):
    """Success envelope shared by every data endpoint."""

    success: bool = Field(True, description="Always true; errors use the error envelope")
    data: dict[str, Any] = Field(..., description="Endpoint payload")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open one shared HTTP client and build the transaction service for the app's lifetime."""
    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.request_timeout_sec) as client:
        app.state.transaction_service = build_transaction_service(settings, client)
        logger.info("api_started", version=__version__)
        yield
    logger.info("api_stopped")


def get_service(request: Request) -> TransactionService:
    """Dependency: the app-scoped TransactionService."""
    return request.app.state.transaction_service


def _ok(data: dict[str, Any]) -> ApiResponse:
    return ApiResponse(success=True, data=data)


def _validate_signature(signature: str) -> str:
    signature = (signature or "").strip()
    if not signature:
        raise HTTPException(status_code=400, detail="signature must be non-empty")
    try:
        Signature.from_string(signature)
    except Exception as e:
        logger.warning("invalid_signature", signature=signature[:16], error=str(e))
        raise HTTPException(status_code=400, detail="Invalid transaction signature") from e
    return signature


def _validate_wallet(wallet: str) -> str:
    wallet = (wallet or "").strip()
    if not wallet:
        raise HTTPException(status_code=400, detail="wallet must be non-empty")
    try:
        Pubkey.from_string(wallet)
    except Exception as e:
        logger.warning("invalid_wallet", wallet=wallet[:16], error=str(e))
        raise HTTPException(status_code=400, detail="Invalid Solana wallet address") from e
    return wallet


def create_app() -> FastAPI:
    app = FastAPI(
        title="Backend SolView API",
        description="Solana transaction classification and financial activity reconstruction.",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail, "status": exc.status_code},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request parameters", "status": 400},
        )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/api/transaction/{signature}", response_model=ApiResponse)
    async def get_transaction(
        signature: str,
        service: TransactionService = Depends(get_service),
    ) -> ApiResponse:
        signature = _validate_signature(signature)
        try:
            data = await service.get_transaction_analysis(signature)
        except TransactionNotFound as e:
            raise HTTPException(status_code=404, detail="Transaction not found") from e
        except ProviderError as e:
            logger.error("transaction_fetch_failed", signature=signature, provider=e.provider, error=e.message)
            raise HTTPException(status_code=502, detail="Upstream provider error") from e
        return _ok(data)

    @app.get("/api/portfolio/history/{wallet}", response_model=ApiResponse)
    async def get_portfolio_history(
        wallet: str,
        limit: int = Query(20, ge=1, le=MAX_HISTORY_LIMIT),
        before: str | None = Query(None),
        service: TransactionService = Depends(get_service),
    ) -> ApiResponse:
        wallet = _validate_wallet(wallet)
        if before is not None:
            before = _validate_signature(before)
        try:
            data = await service.get_wallet_history(wallet, limit=limit, before=before)
        except ProviderError as e:
            logger.error("wallet_history_failed", wallet=wallet[:16], provider=e.provider, error=e.message)
            raise HTTPException(status_code=502, detail="Upstream provider error") from e
        return _ok(data)

    return app


app = create_app()
