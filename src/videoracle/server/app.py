"""Starlette ASGI application for the VideOracle HTTP server.

Exposes the verification market over a versioned REST API, with health,
server info and Prometheus metrics. Caller identities come from a header
set by an authenticating front proxy.
"""

from __future__ import annotations

import importlib
import logging
from contextlib import asynccontextmanager
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..core.exceptions import ConfigException
from ..core.ledger import InMemoryLedger, LedgerAdapter
from ..core.market import OracleService
from .config import ServerSettings, get_settings
from .endpoints import (
    abort_request_endpoint,
    accepted_answers_endpoint,
    claim_endpoint,
    create_dispute_endpoint,
    create_request_endpoint,
    events_endpoint,
    get_proof_endpoint,
    get_request_endpoint,
    market_endpoint,
    submit_proof_endpoint,
    upvote_proof_endpoint,
    verifier_endpoint,
    vote_on_dispute_endpoint,
    withdraw_fees_endpoint,
)
from .metrics import MetricsMiddleware, metrics_endpoint

logger = logging.getLogger(__name__)

API_V1 = "/api/v1"


async def health_endpoint(request: Request) -> JSONResponse:
    """Health check endpoint."""
    settings = get_settings()
    service = getattr(request.app.state, "service", None)

    health_data: dict[str, Any] = {
        "status": "healthy" if service is not None else "degraded",
        "server": settings.server_name,
        "version": settings.server_version,
    }
    if service is not None:
        health_data["total_requests"] = service.total_requests

    status_code = 200 if health_data["status"] == "healthy" else 503
    return JSONResponse(health_data, status_code=status_code)


async def info_endpoint(request: Request) -> JSONResponse:
    """Server info endpoint (no identity required)."""
    settings = get_settings()

    return JSONResponse(
        {
            "server": settings.server_name,
            "version": settings.server_version,
            "apiVersion": "v1",
            "identityHeader": settings.identity_header,
            "endpoints": {
                "info": "/",
                "health": f"{API_V1}/health",
                "market": f"{API_V1}/market",
                "requests": f"{API_V1}/requests",
                "claims": f"{API_V1}/claims/{{role}}",
                "fees": f"{API_V1}/fees/withdraw",
                "events": f"{API_V1}/events",
                "metrics": "/metrics",
            },
        }
    )


def build_ledger(settings: ServerSettings) -> LedgerAdapter:
    """Ledger for the default market.

    ``ledger_factory`` names a ``module:callable`` that receives the settings
    and returns any ``LedgerAdapter``. Without it the market runs on an
    in-memory ledger opened with the configured genesis balances.
    """
    if settings.ledger_factory:
        module_name, _, attr = settings.ledger_factory.partition(":")
        if not module_name or not attr:
            raise ConfigException(f"ledger_factory must look like 'module:callable', got {settings.ledger_factory!r}")
        try:
            factory = getattr(importlib.import_module(module_name), attr)
        except (ImportError, AttributeError) as e:
            raise ConfigException(f"Cannot load ledger factory {settings.ledger_factory!r}: {e}") from e
        ledger = factory(settings)
        if not isinstance(ledger, LedgerAdapter):
            raise ConfigException(f"{settings.ledger_factory} did not return a ledger adapter")
        logger.info(f"Using ledger from {settings.ledger_factory}")
        return ledger
    return InMemoryLedger.from_genesis(settings.genesis_balances, settings.genesis_allowances)


@asynccontextmanager
async def lifespan(app: Starlette):
    """Application lifespan handler."""
    settings = get_settings()
    service: OracleService = app.state.service
    logger.info(
        f"Starting VideOracle server on {settings.host}:{settings.port} "
        f"(fee={service.fee}, rewards={','.join(service.accepted_rewards)})"
    )
    yield
    logger.info("VideOracle server shutting down")


def create_app(service: OracleService | None = None, settings: ServerSettings | None = None) -> Starlette:
    """Create the Starlette ASGI application.

    Args:
        service: Market to serve. Defaults to a fresh market on an in-memory
            ledger, configured from settings.
        settings: Server settings. Defaults to the global settings.
    """
    settings = settings or get_settings()
    if service is None:
        service = OracleService.from_settings(build_ledger(settings), settings=settings)

    routes = [
        # Root info (no version prefix - serves as discovery endpoint)
        Route("/", info_endpoint, methods=["GET"]),
        Route(f"{API_V1}/health", health_endpoint, methods=["GET"]),
        Route(f"{API_V1}/market", market_endpoint, methods=["GET"]),
        # Requests
        Route(f"{API_V1}/requests", create_request_endpoint, methods=["POST"]),
        Route(f"{API_V1}/requests/{{request_id:int}}", get_request_endpoint, methods=["GET"]),
        Route(f"{API_V1}/requests/{{request_id:int}}/abort", abort_request_endpoint, methods=["POST"]),
        Route(f"{API_V1}/requests/{{request_id:int}}/answers", accepted_answers_endpoint, methods=["GET"]),
        # Proofs and upvotes
        Route(f"{API_V1}/requests/{{request_id:int}}/proofs", submit_proof_endpoint, methods=["POST"]),
        Route(
            f"{API_V1}/requests/{{request_id:int}}/proofs/{{proof_index:int}}",
            get_proof_endpoint,
            methods=["GET"],
        ),
        Route(
            f"{API_V1}/requests/{{request_id:int}}/proofs/{{proof_index:int}}/upvote",
            upvote_proof_endpoint,
            methods=["POST"],
        ),
        Route(
            f"{API_V1}/requests/{{request_id:int}}/verifiers/{{identity}}",
            verifier_endpoint,
            methods=["GET"],
        ),
        # Disputes
        Route(f"{API_V1}/requests/{{request_id:int}}/dispute", create_dispute_endpoint, methods=["POST"]),
        Route(
            f"{API_V1}/requests/{{request_id:int}}/dispute/votes",
            vote_on_dispute_endpoint,
            methods=["POST"],
        ),
        # Settlement
        Route(f"{API_V1}/claims/{{role}}", claim_endpoint, methods=["POST"]),
        Route(f"{API_V1}/fees/withdraw", withdraw_fees_endpoint, methods=["POST"]),
        # Events
        Route(f"{API_V1}/events", events_endpoint, methods=["GET"]),
        # Prometheus metrics endpoint
        Route("/metrics", metrics_endpoint, methods=["GET"]),
    ]

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", settings.identity_header],
        ),
        Middleware(MetricsMiddleware),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.service = service
    return app


def run() -> None:
    """Run the server using uvicorn."""
    import uvicorn

    from ..core.logging import configure_logging

    settings = get_settings()
    configure_logging(level=settings.log_level, log_file=settings.log_file)

    logger.info(f"Starting VideOracle HTTP server on {settings.host}:{settings.port}")

    uvicorn.run(
        "videoracle.server.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    run()
