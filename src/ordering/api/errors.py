"""HTTP error mapping for the Ordering API.

Protean's handlers cover the base exceptions (400/404/409/422). The
handlers here add detail for stock and transition failures and map the
ownership and concurrency errors that Protean leaves unhandled.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import InsufficientStock, InvalidTransition, Unauthorized


def register_ordering_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)

    @app.exception_handler(InsufficientStock)
    async def insufficient_stock_handler(request: Request, exc: InsufficientStock) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"error": str(exc), "item": exc.to_dict()},
        )

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"error": str(exc), **exc.to_dict()},
        )

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized) -> JSONResponse:
        return JSONResponse(status_code=403, content={"error": str(exc)})

    @app.exception_handler(ExpectedVersionError)
    async def conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
        # Only reached once internal retries are exhausted
        return JSONResponse(
            status_code=503,
            content={"error": str(exc)},
            headers={"Retry-After": "1"},
        )
