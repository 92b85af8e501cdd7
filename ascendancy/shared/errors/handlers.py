"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ascendancy.domain.trading.errors import (
    AgentNotFoundError,
    CycleAlreadyRunningError,
    PersistenceError,
    TradingDomainError,
)

logger = logging.getLogger(__name__)

HTTP_404 = 404
HTTP_409 = 409
HTTP_500 = 500
HTTP_503 = 503


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(AgentNotFoundError)
    async def handle_agent_not_found(
        _request: Request, exc: AgentNotFoundError
    ) -> JSONResponse:
        """Handle unknown agent ids."""
        logger.warning("Agent not found: %s", exc.agent_id)
        return _error_response(HTTP_404, "Agent not found")

    @app.exception_handler(CycleAlreadyRunningError)
    async def handle_cycle_running(
        _request: Request, exc: CycleAlreadyRunningError
    ) -> JSONResponse:
        """Handle a cycle requested while another is in progress."""
        logger.warning("Cycle already running for agent %s", exc.agent_id)
        return _error_response(
            HTTP_409, "Cycle already running", "Retry once the current cycle completes"
        )

    @app.exception_handler(PersistenceError)
    async def handle_persistence(
        _request: Request, exc: PersistenceError
    ) -> JSONResponse:
        """Handle an unreachable or failing store."""
        logger.error("Persistence error during %s", exc.operation)
        return _error_response(HTTP_503, "Storage unavailable")

    @app.exception_handler(TradingDomainError)
    async def handle_trading_domain(
        _request: Request, exc: TradingDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled trading domain errors."""
        logger.error("Unhandled trading domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
